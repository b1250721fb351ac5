import logging

import httpx

from nippo.config import Settings
from nippo.exceptions import CorrectionError
from nippo.services.llm import OllamaClient
from nippo.utils.text import strip_llm_artifacts

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
あなたは音声入力テキストの校正ツールです。
話した内容をそのまま尊重し、必要最小限の修正のみを行ってください。

補正ルール:
1. 明らかな誤字・脱字のみを修正する。
2. 句読点を自然な位置に追加する。
3. ひらがな→漢字変換は控えめに（一般的な単語のみ）。
4. 話し方や表現、文章の構造や内容は一切変更しない。
5. 「えーっと」などの自然な話し言葉はそのまま保持する。
6. 補正後のテキストのみを出力し、説明や前置きは一切書かない。"""


def build_messages(raw_text: str, context_hint: str | None = None) -> list[dict[str, str]]:
    """Build the chat messages for a single correction request."""
    parts: list[str] = []
    if context_hint:
        parts.append(f"質問（参考情報、出力には含めない）: {context_hint}")
    parts.append(f"音声入力テキスト: {raw_text}")
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n\n".join(parts)},
    ]


class CorrectorService:
    """Spelling, script and punctuation cleanup of one transcript segment.

    ``correct`` raises :class:`CorrectionError` on any failure. Callers decide
    how to fall back; nothing is retried here.
    """

    def __init__(self, client: OllamaClient, settings: Settings) -> None:
        self._client = client
        self._temperature = settings.llm_temperature
        self._num_ctx = settings.ollama_num_ctx

    async def correct(self, raw_text: str, context_hint: str | None = None) -> str:
        if not raw_text.strip():
            return raw_text

        messages = build_messages(raw_text.strip(), context_hint)
        try:
            response = await self._client.chat(
                messages,
                temperature=self._temperature,
                num_ctx=self._num_ctx,
                num_predict=max(256, len(raw_text) * 4),
            )
        except httpx.HTTPStatusError as e:
            raise CorrectionError(
                f"correction service returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise CorrectionError(f"correction service unavailable: {e}") from e

        corrected = strip_llm_artifacts(response.content)
        if not corrected:
            raise CorrectionError("correction service returned empty text")

        logger.debug("Corrected %r -> %r", raw_text[:50], corrected[:50])
        return corrected

    async def is_reachable(self) -> bool:
        return await self._client.is_reachable()
