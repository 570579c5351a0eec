"""Configuration management for the Gmail attachment pipeline."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
)


def _split_list(value: str | Sequence[str] | None) -> list[str]:
    """Turn delimiter-separated env strings into cleaned lists."""
    if value is None:
        return []
    if isinstance(value, str):
        items = re.split(r"[;,]", value)
    else:
        items = list(value)
    cleaned: list[str] = []
    for item in items:
        trimmed = item.strip()
        if not trimmed:
            continue
        cleaned.append(trimmed)
    return cleaned


class Settings(BaseSettings):
    """App configuration derived from environment variables."""

    service_account_file: Path | None = Field(None, alias="GMAIL_SERVICE_ACCOUNT_FILE")
    gmail_subject: str | None = Field(None, alias="GMAIL_SUBJECT")
    gmail_query: str = Field("is:unread has:attachment", alias="GMAIL_QUERY")
    gmail_scopes_raw: str = Field(";".join(DEFAULT_SCOPES), alias="GMAIL_SCOPES")
    gmail_page_size: int = Field(100, alias="GMAIL_PAGE_SIZE")
    request_timeout: float = Field(30.0, alias="GMAIL_REQUEST_TIMEOUT")

    target_mime_type: str = Field("application/pdf", alias="TARGET_MIME_TYPE")
    output_dir: Path = Field(Path("."), alias="OUTPUT_DIR")
    mark_read: bool = Field(True, alias="MARK_READ")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("service_account_file", "gmail_subject", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("gmail_query", "target_mime_type", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("gmail_page_size")
    @classmethod
    def _positive_page_size(cls, value: int) -> int:
        if value < 1 or value > 500:
            raise ValueError("GMAIL_PAGE_SIZE must be between 1 and 500.")
        return value

    @property
    def gmail_scopes(self) -> list[str]:
        """Scopes requested for the delegated service account."""
        scopes = _split_list(self.gmail_scopes_raw)
        return scopes or list(DEFAULT_SCOPES)
