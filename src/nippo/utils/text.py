import re

_THINK_RE = re.compile(
    r"<think>.*?</think>"
    r"|<think>.*"
    r"|^.*?</think>",
    re.DOTALL,
)

# Wrapping quotes or code fences some models add around a plain-text answer
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\n?|\n?```$")
_QUOTE_PAIRS = (("「", "」"), ('"', '"'), ("'", "'"))


def strip_llm_artifacts(text: str) -> str:
    """Remove reasoning blocks, code fences and wrapping quotes from LLM output."""
    cleaned = _THINK_RE.sub("", text)
    cleaned = _FENCE_RE.sub("", cleaned.strip()).strip()
    for left, right in _QUOTE_PAIRS:
        if len(cleaned) >= 2 and cleaned.startswith(left) and cleaned.endswith(right):
            inner = cleaned[len(left):-len(right)]
            # only unwrap when the quotes are not part of the sentence itself
            if left not in inner and right not in inner:
                cleaned = inner.strip()
            break
    return cleaned


def append_text(buffer: str, addition: str) -> str:
    """Append ``addition`` to ``buffer`` separated by a single space.

    No separator is added to an empty buffer or one that already ends in
    whitespace.
    """
    if not addition:
        return buffer
    if not buffer:
        return addition
    if buffer[-1].isspace():
        return buffer + addition
    return f"{buffer} {addition}"
