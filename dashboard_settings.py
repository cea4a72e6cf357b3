"""User-editable pipeline settings and their SQLite-backed store."""

import logging
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import select

from models import DashboardSettingsRecord

logger = logging.getLogger(__name__)

SETTINGS_KEY = "pipeline"


class AppSettings(BaseModel):
    relevance_threshold: int = Field(50, ge=0, le=100)
    categories: list[str] = Field(
        default_factory=lambda: ["AI/ML", "Cybersecurity", "Startups", "Developer Tools", "Research"]
    )
    sources: list[str] = Field(
        default_factory=lambda: ["HN Top", "HN New", "Ask HN", "Show HN", "HN Jobs", "arXiv"]
    )
    auto_approve_threshold: int = Field(75, ge=0, le=100)
    max_threads_per_scan: int = Field(10, ge=1, le=50)
    thread_style: Literal["Professional", "Casual", "Technical"] = "Professional"
    blocked_domains: str = ""

    def toggle_category(self, category: str) -> "AppSettings":
        return self.model_copy(update={"categories": _toggle(self.categories, category)})

    def toggle_source(self, source: str) -> "AppSettings":
        return self.model_copy(update={"sources": _toggle(self.sources, source)})


def _toggle(values: list[str], value: str) -> list[str]:
    if value in values:
        return [v for v in values if v != value]
    return [*values, value]


def merge_settings(stored: dict | None, base: AppSettings | None = None) -> AppSettings:
    """Overlay stored values on the defaults one key at a time.

    Unknown keys are ignored and a value that fails validation keeps the
    default, so settings written by older or newer versions still load.
    """
    merged = base or AppSettings()
    if not isinstance(stored, dict):
        return merged

    for key, value in stored.items():
        if key not in AppSettings.model_fields:
            continue
        try:
            merged = AppSettings.model_validate({**merged.model_dump(), key: value})
        except ValidationError:
            logger.warning("Ignoring invalid stored setting %s=%r", key, value)
    return merged


class SettingsStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def load(self) -> AppSettings:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DashboardSettingsRecord).where(DashboardSettingsRecord.key == SETTINGS_KEY)
            )
            record = result.scalar_one_or_none()
        if record is None:
            return AppSettings()
        return merge_settings(record.data)

    async def save(self, app_settings: AppSettings) -> None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DashboardSettingsRecord).where(DashboardSettingsRecord.key == SETTINGS_KEY)
            )
            record = result.scalar_one_or_none()
            if record is None:
                record = DashboardSettingsRecord(key=SETTINGS_KEY)
                session.add(record)
            record.data = app_settings.model_dump()
            record.updated_at = datetime.now(timezone.utc)
            await session.commit()
        logger.info("Settings saved")
