"""Daily report formatting and hand-off to persistence."""

import logging
import uuid
from datetime import date, datetime, timezone

import httpx

from nippo.config import Settings
from nippo.exceptions import ReportError
from nippo.schemas.report import ReportRequest, ReportResponse, VoiceResponse
from nippo.services.llm import OllamaClient
from nippo.services.persistence import PersistenceService
from nippo.utils.text import strip_llm_artifacts

logger = logging.getLogger(__name__)

_WEEKDAYS = "月火水木金土日"

# Section titles, in question order
SECTION_TITLES = [
    "本日の業務実績",
    "印象に残った接客",
    "売上・目標達成状況",
    "課題・改善点",
    "明日への目標・意気込み",
]
OTHER_SECTION_TITLE = "その他・連絡事項"
NO_CONTENT = "なし"

REPORT_SYSTEM_PROMPT = """\
あなたは美容室の日報作成アシスタントです。
スタッフの質問と回答から日報を生成してください。

ルール:
1. 指定されたフォーマットの見出しと順序を必ず守る。
2. 回答に書かれていない事実を追加しない。
3. 回答の内容を読みやすく整理するだけにとどめる。
4. 日報本文のみを出力し、説明や前置きは一切書かない。"""


def format_date(day: date) -> str:
    """Render a date as e.g. ``2025/1/10(金)``."""
    return f"{day.year}/{day.month}/{day.day}({_WEEKDAYS[day.weekday()]})"


def format_report(responses: list[VoiceResponse], staff_name: str, report_date: date) -> str:
    """Render answers into the fixed daily-report template.

    The first answers fill the named sections by question index; answers to
    any further questions are collected under the final section.
    """
    by_index = {r.question_index: r.answer.strip() for r in responses}

    lines = [f"【日報】{format_date(report_date)}　スタッフ名: {staff_name}"]
    for index, title in enumerate(SECTION_TITLES):
        lines.append("")
        lines.append(f"■ {title}")
        lines.append(by_index.get(index, ""))

    extra = [
        by_index[index]
        for index in sorted(by_index)
        if index >= len(SECTION_TITLES) and by_index[index]
    ]
    lines.append("")
    lines.append(f"■ {OTHER_SECTION_TITLE}")
    lines.append("\n".join(extra) if extra else NO_CONTENT)
    return "\n".join(lines)


def _build_report_prompt(
    responses: list[VoiceResponse], staff_name: str, report_date: date, template: str
) -> str:
    qa = "\n\n".join(
        f"質問{r.question_index + 1}: {r.question}\n回答: {r.answer}" for r in responses
    )
    return (
        f"スタッフ名: {staff_name}\n"
        f"日付: {format_date(report_date)}\n\n"
        f"質問と回答:\n{qa}\n\n"
        f"以下のフォーマットで日報を作成してください:\n\n{template}"
    )


class ReportService:
    def __init__(
        self,
        persistence: PersistenceService,
        settings: Settings,
        client: OllamaClient | None = None,
    ) -> None:
        self._persistence = persistence
        self._client = client
        self._use_llm = settings.report_use_llm

    async def create(self, request: ReportRequest) -> ReportResponse:
        """Format and persist a report. Raises :class:`ReportError`."""
        responses = sorted(request.responses, key=lambda r: r.question_index)
        if not any(r.answer.strip() for r in responses):
            raise ReportError("report has no answers")

        report_date = request.report_date or date.today()
        staff_name = request.staff_name.strip()
        formatted = format_report(responses, staff_name, report_date)

        use_llm = self._use_llm if request.use_llm is None else request.use_llm
        llm_formatted = False
        if use_llm and self._client is not None:
            polished = await self._polish(responses, staff_name, report_date, formatted)
            if polished:
                formatted = polished
                llm_formatted = True

        report = ReportResponse(
            report_id=uuid.uuid4().hex,
            staff_name=staff_name,
            report_date=report_date,
            responses=responses,
            formatted_report=formatted,
            llm_formatted=llm_formatted,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self._persistence.save_report(report.report_id, report)
        except OSError as e:
            raise ReportError(f"failed to persist report: {e}") from e
        return report

    def get(self, report_id: str) -> ReportResponse | None:
        """Load a persisted report, or None when it does not exist."""
        data = self._persistence.load_report(report_id)
        if data is None:
            return None
        return ReportResponse.model_validate(data)

    async def _polish(
        self,
        responses: list[VoiceResponse],
        staff_name: str,
        report_date: date,
        template: str,
    ) -> str | None:
        """LLM-written report, or None to keep the template rendering."""
        messages = [
            {"role": "system", "content": REPORT_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": _build_report_prompt(responses, staff_name, report_date, template),
            },
        ]
        try:
            response = await self._client.chat(messages)
        except httpx.HTTPError as e:
            logger.warning("LLM report formatting failed, using template: [%s] %s", type(e).__name__, e)
            return None
        text = strip_llm_artifacts(response.content)
        return text or None
