from nippo.config import Settings


class QuestionSource:
    """Ordered daily-report question prompts."""

    def __init__(self, questions: list[str]) -> None:
        if not questions:
            raise ValueError("at least one question is required")
        self._questions = list(questions)

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuestionSource":
        return cls(settings.report_questions)

    def __len__(self) -> int:
        return len(self._questions)

    def get(self, index: int) -> str:
        if not 0 <= index < len(self._questions):
            raise IndexError(f"question index {index} out of range (0-{len(self._questions) - 1})")
        return self._questions[index]

    def all(self) -> list[str]:
        return list(self._questions)
