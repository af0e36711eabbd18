"""Configuration models describing doctable settings."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ACCEPTED_EXTENSIONS = ["pdf", "doc", "docx", "xls", "xlsx", "csv", "tsv", "txt", "json"]


class DocTableBaseModel(BaseModel):
    """Shared configuration for doctable settings models."""

    model_config = ConfigDict(extra="forbid")


class UploadSettings(DocTableBaseModel):
    """Settings for the simulated upload pipeline.

    Attributes:
        progress_step: Percentage points added on every tick.
        tick_interval_ms: Delay between progress ticks.
        completion_delay_ms: Delay between reaching 100% and completing.
        max_file_size_mb: Soft size limit; larger files only raise a warning.
        accepted_extensions: Extensions the uploader advertises.
    """

    progress_step: int = Field(default=5, ge=1, le=100)
    tick_interval_ms: int = Field(default=300, ge=0)
    completion_delay_ms: int = Field(default=500, ge=0)
    max_file_size_mb: int = Field(default=10, ge=0)
    accepted_extensions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ACCEPTED_EXTENSIONS)
    )


class NotificationSettings(DocTableBaseModel):
    """Notification bus behavior.

    Attributes:
        auto_hide_ms: Lifetime of a notification before it expires.
    """

    auto_hide_ms: int = Field(default=6000, ge=0)


class TagSetting(DocTableBaseModel):
    """Label/value pair applied to new documents."""

    label: str
    value: str


class DocumentSettings(DocTableBaseModel):
    """Defaults applied by the document repository.

    Attributes:
        id_prefix: Prefix used for generated document identifiers.
        timestamp_format: ``strftime`` pattern for ``last_modified`` stamps.
        default_tags: Tags stamped on uploads that carry none.
        stamp_year_tag: Whether to prepend a ``Year`` tag for the current year.
    """

    id_prefix: str = "doc"
    timestamp_format: str = "%m/%d/%Y, %I:%M:%S %p"
    default_tags: List[TagSetting] = Field(
        default_factory=lambda: [TagSetting(label="Team", value="Medical")]
    )
    stamp_year_tag: bool = True


class FilterSettings(DocTableBaseModel):
    """Initial filter applied when a session starts."""

    brand: str = "HAL"
    category: Optional[str] = "Medical"


class LoggingSettings(DocTableBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; enables a rotating file handler.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 3


class DocTableConfig(DocTableBaseModel):
    """Top-level configuration struct for doctable.

    Attributes:
        upload: Upload pipeline settings.
        notifications: Notification bus settings.
        documents: Repository defaults.
        filters: Initial filter selection.
        logging: Logging configuration.
    """

    upload: UploadSettings = Field(default_factory=UploadSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    documents: DocumentSettings = Field(default_factory=DocumentSettings)
    filters: FilterSettings = Field(default_factory=FilterSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "DEFAULT_ACCEPTED_EXTENSIONS",
    "DocTableBaseModel",
    "UploadSettings",
    "NotificationSettings",
    "TagSetting",
    "DocumentSettings",
    "FilterSettings",
    "LoggingSettings",
    "DocTableConfig",
]
