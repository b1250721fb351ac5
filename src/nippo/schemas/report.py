from datetime import date, datetime

from pydantic import BaseModel, Field


class VoiceResponse(BaseModel):
    question: str
    answer: str
    question_index: int = Field(ge=0)


class ReportRequest(BaseModel):
    staff_name: str = Field(min_length=1)
    report_date: date | None = None
    responses: list[VoiceResponse]
    use_llm: bool | None = None


class ReportResponse(BaseModel):
    report_id: str
    staff_name: str
    report_date: date
    responses: list[VoiceResponse]
    formatted_report: str
    llm_formatted: bool = False
    created_at: datetime
