from nippo.utils.text import append_text, strip_llm_artifacts


class TestStripLlmArtifacts:
    def test_plain_text_unchanged(self):
        assert strip_llm_artifacts("今日は晴れです。") == "今日は晴れです。"

    def test_think_block_removed(self):
        assert strip_llm_artifacts("<think>考え中</think>今日は晴れです。") == "今日は晴れです。"

    def test_unclosed_think_block_removed(self):
        assert strip_llm_artifacts("<think>途中で切れた") == ""

    def test_orphan_closing_tag_removed(self):
        assert strip_llm_artifacts("reasoning</think>\n答え") == "答え"

    def test_code_fence_removed(self):
        assert strip_llm_artifacts("```\n本文です。\n```") == "本文です。"

    def test_wrapping_brackets_removed(self):
        assert strip_llm_artifacts("「本文です。」") == "本文です。"

    def test_inner_quotes_are_kept(self):
        text = "「はい」と「いいえ」"
        assert strip_llm_artifacts(text) == text


class TestAppendText:
    def test_empty_buffer(self):
        assert append_text("", "new") == "new"

    def test_single_space_separator(self):
        assert append_text("old", "new") == "old new"

    def test_trailing_whitespace_not_doubled(self):
        assert append_text("old ", "new") == "old new"
        assert append_text("old\n", "new") == "old\nnew"

    def test_empty_addition(self):
        assert append_text("old", "") == "old"
