"""Tests for plan grouping, statistics and the preview tree."""

from __future__ import annotations

from datetime import datetime, timezone

from smartstore.organization.models import OrganizationRule
from smartstore.organization.planner import generate_plan
from smartstore.organization.presentation import (
    ROOT_FOLDER_LABEL,
    build_preview_tree,
    compute_stats,
    group_by_folder,
)
from smartstore.snapshot import FileNode, build_tree, node_id

ROOT = "/data"


def _file(relative: str, size: int) -> FileNode:
    path = f"{ROOT}/{relative}"
    moment = datetime(2024, 3, 5, tzinfo=timezone.utc)
    return FileNode(
        id=node_id(path),
        name=relative.rsplit("/", 1)[-1],
        path=path,
        size_bytes=size,
        modified_at=moment,
        created_at=moment,
    )


def _plan(rule: OrganizationRule, *files: FileNode):
    return generate_plan(build_tree(files, ROOT), rule, root_path=ROOT)


def test_group_by_folder_keeps_first_seen_order() -> None:
    plan = _plan(
        OrganizationRule.BY_TYPE,
        _file("a.pdf", 1),
        _file("b.png", 2),
        _file("c.pdf", 3),
    )

    groups = group_by_folder(plan)

    assert list(groups) == ["PDFs", "Images"]
    assert [op.source_file.name for op in groups["PDFs"]] == ["a.pdf", "c.pdf"]


def test_compute_stats_totals_sizes_and_counts() -> None:
    plan = _plan(
        OrganizationRule.BY_TYPE,
        _file("a.pdf", 10),
        _file("b.png", 20),
        _file("c.pdf", 30),
    )

    stats = compute_stats(plan)

    assert stats.total_files == 3
    assert stats.total_size_bytes == 60
    assert stats.per_folder_count == {"PDFs": 2, "Images": 1}


def test_root_destination_is_labelled() -> None:
    plan = _plan(OrganizationRule.FLATTEN, _file("nested/a.txt", 5))

    assert list(group_by_folder(plan)) == [ROOT_FOLDER_LABEL]
    assert compute_stats(plan).per_folder_count == {ROOT_FOLDER_LABEL: 1}


def test_preview_tree_places_files_at_destinations() -> None:
    plan = _plan(
        OrganizationRule.BY_DATE,
        _file("a.txt", 4),
        _file("b.txt", 6),
    )

    tree = build_preview_tree(plan)

    assert len(tree) == 1
    year = tree[0]
    assert year.is_folder
    assert year.size_bytes == 10
    month = year.children[0]
    assert {child.path for child in month.children} == {
        op.destination_path for op in plan.operations
    }


def test_preview_tree_shows_first_of_colliding_operations() -> None:
    plan = _plan(
        OrganizationRule.FLATTEN,
        _file("one/report.txt", 1),
        _file("two/report.txt", 2),
    )

    tree = build_preview_tree(plan)

    assert len(plan.operations) == 2
    assert [(node.name, node.size_bytes) for node in tree] == [("report.txt", 1)]
