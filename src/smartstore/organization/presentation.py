"""Display-only derivations of organization plans."""

from __future__ import annotations

from dataclasses import dataclass, field

from smartstore.snapshot.models import FileNode
from smartstore.snapshot.tree import build_tree

from .models import MoveOperation, OrganizationPlan

ROOT_FOLDER_LABEL = "Root"


@dataclass(slots=True)
class PlanStats:
    """Aggregate figures for a plan.

    Attributes:
        total_files: Number of move operations.
        total_size_bytes: Sum of the moved files' sizes.
        per_folder_count: Operation count per destination folder label.
    """

    total_files: int = 0
    total_size_bytes: int = 0
    per_folder_count: dict[str, int] = field(default_factory=dict)


def folder_label(operation: MoveOperation) -> str:
    return operation.destination_folder or ROOT_FOLDER_LABEL


def group_by_folder(plan: OrganizationPlan) -> dict[str, list[MoveOperation]]:
    """Group operations by destination folder in first-seen order."""

    groups: dict[str, list[MoveOperation]] = {}
    for operation in plan.operations:
        groups.setdefault(folder_label(operation), []).append(operation)
    return groups


def compute_stats(plan: OrganizationPlan) -> PlanStats:
    """Return file, byte and per-folder counts for ``plan``."""

    stats = PlanStats(total_files=len(plan.operations))
    for operation in plan.operations:
        label = folder_label(operation)
        stats.per_folder_count[label] = stats.per_folder_count.get(label, 0) + 1
        stats.total_size_bytes += operation.source_file.size_bytes
    return stats


def build_preview_tree(plan: OrganizationPlan) -> list[FileNode]:
    """Return the folder tree the moved files would form under the plan root.

    When two operations target the same path only the first one is shown.
    """

    moved: dict[str, FileNode] = {}
    for operation in plan.operations:
        moved.setdefault(
            operation.destination_path,
            operation.source_file.model_copy(update={"path": operation.destination_path}),
        )
    return build_tree(moved.values(), plan.root_path)


__all__ = [
    "PlanStats",
    "ROOT_FOLDER_LABEL",
    "build_preview_tree",
    "compute_stats",
    "folder_label",
    "group_by_folder",
]
