from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'Survey Report Generator'

    output_dir: Path = Field(
        default=Path('./reports'),
        validation_alias=AliasChoices('SURVEY_REPORT_OUTPUT_DIR', 'OUTPUT_DIR'),
    )
    report_title: str = 'Survey Data Report'
    report_author: str = 'Survey Dashboard'

    # Remote image loading. No timeout unless configured: a stalled host
    # stalls the whole report.
    image_fetch_timeout_seconds: float | None = None
    image_follow_redirects: bool = True
    image_user_agent: str = 'surveyreport/0.1 (+python-httpx)'
    image_jpeg_quality: int = 85

    log_level: str = Field(
        default='INFO',
        validation_alias=AliasChoices('SURVEY_REPORT_LOG_LEVEL', 'LOG_LEVEL'),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
