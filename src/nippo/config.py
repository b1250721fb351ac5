from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REPORT_QUESTIONS = [
    "今日はどんなお客様の対応をしましたか？",
    "印象に残ったお客様はいらっしゃいましたか？",
    "今日の売上目標の達成状況はいかがでしたか？",
    "何か困ったことや気になったことはありましたか？",
    "明日に向けて意気込みや目標があれば教えてください",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # LLM configuration (Ollama native API)
    llm_base_url: str = "http://localhost:11434"
    llm_model_name: str = "qwen2.5:7b"
    llm_temperature: float = 0.1
    llm_timeout: float = 30.0  # read timeout; a timed-out correction falls back to raw text
    llm_max_concurrent: int = 3
    ollama_num_ctx: int = 4096

    # Segments shorter than this (after strip) skip the correction call
    correction_min_chars: int = 3

    # Recognition
    recognition_language: str = "ja-JP"

    # Report
    report_questions: list[str] = DEFAULT_REPORT_QUESTIONS
    report_use_llm: bool = False

    # Answer sessions
    session_max_in_memory: int = 100

    # Storage
    data_dir: Path = Path("./data")

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]


settings = Settings()
