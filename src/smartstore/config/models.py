"""Configuration models describing smartstore settings."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from smartstore.organization.models import (
    DEFAULT_MEDIUM_BYTES,
    DEFAULT_SMALL_BYTES,
    DateGranularity,
    OrganizationRule,
    RuleOptions,
    SizeThresholds,
)


class SmartstoreBaseModel(BaseModel):
    """Shared configuration for settings models."""

    model_config = ConfigDict(extra="forbid")


class OrganizationDefaults(SmartstoreBaseModel):
    """Defaults used when a command does not name a rule or options.

    Attributes:
        rule: Rule applied when none is given.
        date_granularity: Folder depth for the date rule.
        small_bytes: Upper bound (exclusive) of the small size bucket.
        medium_bytes: Upper bound (exclusive) of the medium size bucket.
        custom_categories: Category name to extensions for the custom rule.
    """

    rule: OrganizationRule = OrganizationRule.BY_TYPE
    date_granularity: DateGranularity = DateGranularity.YEAR_MONTH
    small_bytes: int = DEFAULT_SMALL_BYTES
    medium_bytes: int = DEFAULT_MEDIUM_BYTES
    custom_categories: Dict[str, List[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "OrganizationDefaults":
        if not 0 < self.small_bytes < self.medium_bytes:
            raise ValueError("small_bytes must be positive and lower than medium_bytes")
        return self

    def rule_options(self) -> RuleOptions:
        """Build ``RuleOptions`` from these defaults."""
        return RuleOptions(
            date_granularity=self.date_granularity,
            size_thresholds=SizeThresholds(
                small_bytes=self.small_bytes, medium_bytes=self.medium_bytes
            ),
            custom_categories=self.custom_categories,
        )


class ScanningOptions(SmartstoreBaseModel):
    """Snapshot scanning behavior.

    Attributes:
        recursive: Whether to descend into subdirectories.
        include_hidden: Whether dot-prefixed entries are included.
        follow_symlinks: Whether symbolic links are followed.
    """

    recursive: bool = True
    include_hidden: bool = False
    follow_symlinks: bool = False


class HistorySettings(SmartstoreBaseModel):
    """History retention.

    Attributes:
        keep_count: Number of most recent batches kept after each apply.
        state_dirname: Directory below the collection root holding state files.
    """

    keep_count: int = Field(default=50, ge=0)
    state_dirname: str = ".smartstore"


class LoggingSettings(SmartstoreBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of rotated log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(SmartstoreBaseModel):
    """CLI presentation defaults."""

    quiet_default: bool = False
    summary_default: bool = False
    history_limit: int = 10


class SmartstoreConfig(SmartstoreBaseModel):
    """Top-level configuration."""

    organization: OrganizationDefaults = Field(default_factory=OrganizationDefaults)
    scanning: ScanningOptions = Field(default_factory=ScanningOptions)
    history: HistorySettings = Field(default_factory=HistorySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "CLIOptions",
    "HistorySettings",
    "LoggingSettings",
    "OrganizationDefaults",
    "ScanningOptions",
    "SmartstoreBaseModel",
    "SmartstoreConfig",
]
