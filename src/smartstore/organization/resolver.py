"""Destination resolution for individual files."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from smartstore.classification import category_folder_name, classify
from smartstore.snapshot.models import FileNode

from .errors import PlanConfigurationError
from .models import DateGranularity, OrganizationRule, RuleOptions, SizeThresholds

SMALL_LABEL = "Small (< 1 MB)"
MEDIUM_LABEL = "Medium (1-100 MB)"
LARGE_LABEL = "Large (> 100 MB)"
NO_EXTENSION_LABEL = "No Extension"
UNCATEGORIZED_LABEL = "Uncategorized"


def by_type(file: FileNode, options: RuleOptions) -> str:
    return category_folder_name(file.category or classify(file.name))


def by_date(file: FileNode, options: RuleOptions) -> str:
    return date_folder(file.modified_at, options.date_granularity)


def by_size(file: FileNode, options: RuleOptions) -> str:
    return size_bucket(file.size_bytes, options.size_thresholds)


def by_extension(file: FileNode, options: RuleOptions) -> str:
    extension = file.extension
    if not extension:
        return NO_EXTENSION_LABEL
    return extension.upper()


def flatten(file: FileNode, options: RuleOptions) -> str:
    return ""


def custom(file: FileNode, options: RuleOptions) -> str:
    extension = file.extension.lower()
    for category, extensions in options.custom_categories.items():
        if extension and extension in extensions:
            return category
    return UNCATEGORIZED_LABEL


def date_folder(moment: datetime, granularity: DateGranularity) -> str:
    """Return ``YYYY``, ``YYYY/YYYY-MM`` or ``YYYY/YYYY-MM/YYYY-MM-DD``."""

    year = f"{moment.year:04d}"
    month = f"{year}-{moment.month:02d}"
    day = f"{month}-{moment.day:02d}"
    if granularity is DateGranularity.YEAR:
        return year
    if granularity is DateGranularity.YEAR_MONTH:
        return f"{year}/{month}"
    return f"{year}/{month}/{day}"


def size_bucket(size_bytes: int, thresholds: SizeThresholds) -> str:
    """Return the size label; each bucket includes its lower bound."""

    if size_bytes < thresholds.small_bytes:
        return SMALL_LABEL
    if size_bytes < thresholds.medium_bytes:
        return MEDIUM_LABEL
    return LARGE_LABEL


_RESOLVERS: dict[OrganizationRule, Callable[[FileNode, RuleOptions], str]] = {
    OrganizationRule.BY_TYPE: by_type,
    OrganizationRule.BY_DATE: by_date,
    OrganizationRule.BY_SIZE: by_size,
    OrganizationRule.BY_EXTENSION: by_extension,
    OrganizationRule.FLATTEN: flatten,
    OrganizationRule.CUSTOM: custom,
}


def validate_rule_options(rule: OrganizationRule, options: RuleOptions) -> None:
    """Check that ``options`` carries what ``rule`` needs.

    Raises:
        PlanConfigurationError: If the custom rule has no category map.
    """

    if rule is OrganizationRule.CUSTOM and not options.custom_categories:
        raise PlanConfigurationError("The custom rule requires at least one category mapping.")


def resolve_destination(
    file: FileNode,
    rule: OrganizationRule,
    options: RuleOptions,
) -> Optional[str]:
    """Compute the destination folder of ``file`` under the organization root.

    Args:
        file: Snapshot node to place.
        rule: Organization rule to apply.
        options: Rule options.

    Returns:
        Optional[str]: Folder relative to the root (``""`` is the root itself),
            or ``None`` for folders, which are never moved.

    Raises:
        PlanConfigurationError: If the rule is unknown or misconfigured.
    """

    resolver = _RESOLVERS.get(rule)
    if resolver is None:
        raise PlanConfigurationError(f"Unknown organization rule: {rule!r}")
    validate_rule_options(rule, options)
    if file.is_folder:
        return None
    return resolver(file, options)


__all__ = [
    "LARGE_LABEL",
    "MEDIUM_LABEL",
    "NO_EXTENSION_LABEL",
    "SMALL_LABEL",
    "UNCATEGORIZED_LABEL",
    "date_folder",
    "resolve_destination",
    "size_bucket",
    "validate_rule_options",
]
