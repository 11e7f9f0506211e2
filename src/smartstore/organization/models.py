"""Organization rule and plan data models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from smartstore.snapshot.models import FileNode

from .errors import PlanConfigurationError

DEFAULT_SMALL_BYTES = 1024 * 1024
DEFAULT_MEDIUM_BYTES = 100 * 1024 * 1024


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


class OrganizationRule(str, Enum):
    """Strategies used to compute destination folders."""

    BY_TYPE = "byType"
    BY_DATE = "byDate"
    BY_SIZE = "bySize"
    BY_EXTENSION = "byExtension"
    FLATTEN = "flatten"
    CUSTOM = "custom"


_RULE_ALIASES: dict[str, OrganizationRule] = {
    "type": OrganizationRule.BY_TYPE,
    "date": OrganizationRule.BY_DATE,
    "size": OrganizationRule.BY_SIZE,
    "extension": OrganizationRule.BY_EXTENSION,
    "ext": OrganizationRule.BY_EXTENSION,
}


def parse_rule(value: OrganizationRule | str) -> OrganizationRule:
    """Coerce a rule name or alias into an ``OrganizationRule``.

    Accepts the canonical names (``byType``), snake and kebab spellings
    (``by_type``, ``by-type``) and the short forms (``type``, ``ext``).

    Raises:
        PlanConfigurationError: If the value names no known rule.
    """

    if isinstance(value, OrganizationRule):
        return value
    key = str(value).strip().replace("-", "").replace("_", "").lower()
    for rule in OrganizationRule:
        if rule.value.lower() == key:
            return rule
    if key.startswith("by") and key[2:] in _RULE_ALIASES:
        return _RULE_ALIASES[key[2:]]
    if key in _RULE_ALIASES:
        return _RULE_ALIASES[key]
    raise PlanConfigurationError(f"Unknown organization rule: {value!r}")


class DateGranularity(str, Enum):
    """Depth of the folder hierarchy produced by the date rule."""

    YEAR = "year"
    YEAR_MONTH = "year-month"
    YEAR_MONTH_DAY = "year-month-day"


class OperationStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    UNDONE = "undone"
    FAILED = "failed"


class PlanStatus(str, Enum):
    PREVIEW = "preview"
    APPLIED = "applied"
    UNDONE = "undone"
    PARTIAL = "partial"


class SizeThresholds(BaseModel):
    """Byte boundaries for the size rule.

    Files below ``small_bytes`` are small, files below ``medium_bytes`` are
    medium, everything else is large.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    small_bytes: int = Field(default=DEFAULT_SMALL_BYTES, gt=0)
    medium_bytes: int = Field(default=DEFAULT_MEDIUM_BYTES, gt=0)

    @model_validator(mode="after")
    def _check_order(self) -> "SizeThresholds":
        if self.small_bytes >= self.medium_bytes:
            raise ValueError("small_bytes must be lower than medium_bytes")
        return self


class RuleOptions(BaseModel):
    """Options shared by all rules; each rule reads the fields it needs.

    Attributes:
        date_granularity: Folder depth for the date rule.
        size_thresholds: Bucket boundaries for the size rule.
        custom_categories: Category name to extension set for the custom rule.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    date_granularity: DateGranularity = DateGranularity.YEAR_MONTH
    size_thresholds: SizeThresholds = Field(default_factory=SizeThresholds)
    custom_categories: Dict[str, frozenset[str]] = Field(default_factory=dict)

    @field_validator("custom_categories", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        normalized: dict[str, frozenset[str]] = {}
        for category, extensions in value.items():
            if isinstance(extensions, str):
                extensions = [extensions]
            normalized[str(category)] = frozenset(
                str(extension).strip().lstrip(".").lower() for extension in extensions
            )
        return normalized


def coerce_options(options: RuleOptions | Mapping[str, Any] | None) -> RuleOptions:
    """Return validated ``RuleOptions`` from a model, a mapping, or ``None``.

    Raises:
        PlanConfigurationError: If the mapping fails validation.
    """

    if options is None:
        return RuleOptions()
    if isinstance(options, RuleOptions):
        return options
    try:
        return RuleOptions.model_validate(dict(options))
    except ValidationError as exc:
        raise PlanConfigurationError(f"Invalid rule options: {exc}") from exc
    except TypeError as exc:
        raise PlanConfigurationError(f"Rule options must be a mapping: {exc}") from exc


class MoveOperation(BaseModel):
    """A proposed or executed move of one file.

    Attributes:
        id: Operation identifier.
        source_file: Snapshot of the file as it was when the plan was generated.
        source_path: Absolute path before the move.
        destination_path: Absolute path after the move.
        destination_folder: Folder under the organization root ("" for the root).
        status: Execution status of the operation.
        error: Failure message when ``status`` is ``failed``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    source_file: FileNode
    source_path: str
    destination_path: str
    destination_folder: str
    status: OperationStatus = OperationStatus.PENDING
    error: Optional[str] = None


class OrganizationPlan(BaseModel):
    """The unit of preview, apply and undo.

    ``affected_files`` and ``new_folders`` are captured when the plan is built
    and are not recomputed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    description: str
    rule: OrganizationRule
    root_path: str = ""
    operations: List[MoveOperation] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: PlanStatus = PlanStatus.PREVIEW
    affected_files: int = 0
    new_folders: List[str] = Field(default_factory=list)

    @property
    def failed_operations(self) -> list[MoveOperation]:
        return [op for op in self.operations if op.status is OperationStatus.FAILED]

    @property
    def applied_operations(self) -> list[MoveOperation]:
        return [op for op in self.operations if op.status is OperationStatus.APPLIED]

    @property
    def is_empty(self) -> bool:
        return not self.operations


__all__ = [
    "DEFAULT_MEDIUM_BYTES",
    "DEFAULT_SMALL_BYTES",
    "DateGranularity",
    "MoveOperation",
    "OperationStatus",
    "OrganizationPlan",
    "OrganizationRule",
    "PlanStatus",
    "RuleOptions",
    "SizeThresholds",
    "coerce_options",
    "new_id",
    "parse_rule",
]
