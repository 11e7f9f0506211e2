"""Planner for rule-based organization."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from smartstore.snapshot.models import FileNode
from smartstore.snapshot.tree import flatten_tree, normalize_root

from .models import (
    MoveOperation,
    OrganizationPlan,
    OrganizationRule,
    RuleOptions,
    coerce_options,
    parse_rule,
)
from .resolver import resolve_destination, validate_rule_options

LOGGER = logging.getLogger(__name__)

RULE_DESCRIPTIONS: dict[OrganizationRule, str] = {
    OrganizationRule.BY_TYPE: "Organize files into folders by their type (Documents, Images, etc.)",
    OrganizationRule.BY_DATE: "Organize files into Year/Month folders based on modification date",
    OrganizationRule.BY_SIZE: "Organize files into Small, Medium, and Large folders based on size",
    OrganizationRule.BY_EXTENSION: "Organize files into folders by their file extension",
    OrganizationRule.FLATTEN: "Move all files to the root folder",
    OrganizationRule.CUSTOM: "Organize files into custom categories by extension",
}


def destination_path(root_path: str, folder: str, name: str) -> str:
    """Return ``root/folder/name``, dropping the folder segment when it is empty."""

    root = normalize_root(root_path)
    if folder:
        return f"{root}/{folder}/{name}"
    return f"{root}/{name}"


class OrganizerPlanner:
    """Derive move plans from a snapshot and a rule."""

    def build_plan(
        self,
        snapshot: Iterable[FileNode],
        rule: OrganizationRule | str,
        options: RuleOptions | Mapping[str, Any] | None = None,
        *,
        root_path: str = "",
    ) -> OrganizationPlan:
        """Produce a preview plan for ``snapshot``.

        Files already sitting at their computed destination are left out, so
        re-running a rule on its own output yields an empty plan.

        Args:
            snapshot: Top-level snapshot nodes; folders are walked in pre-order.
            rule: Organization rule or one of its aliases.
            options: Rule options as a model or a mapping.
            root_path: Absolute organization root.

        Returns:
            OrganizationPlan: Plan in ``preview`` status.

        Raises:
            PlanConfigurationError: If the rule or options are invalid.
        """

        resolved_rule = parse_rule(rule)
        resolved_options = coerce_options(options)
        validate_rule_options(resolved_rule, resolved_options)

        operations: list[MoveOperation] = []
        new_folders: dict[str, None] = {}

        for node in flatten_tree(snapshot):
            if not node.is_file:
                continue
            folder = resolve_destination(node, resolved_rule, resolved_options)
            if folder is None:
                continue
            target = destination_path(root_path, folder, node.name)
            if node.path == target:
                continue
            new_folders.setdefault(folder, None)
            operations.append(
                MoveOperation(
                    source_file=node,
                    source_path=node.path,
                    destination_path=target,
                    destination_folder=folder,
                )
            )

        plan = OrganizationPlan(
            name=f"Organize by {resolved_rule.value}",
            description=RULE_DESCRIPTIONS[resolved_rule],
            rule=resolved_rule,
            root_path=normalize_root(root_path),
            operations=operations,
            affected_files=len(operations),
            new_folders=list(new_folders),
        )
        LOGGER.debug(
            "Built plan %s (%s) with %d operation(s) across %d folder(s).",
            plan.id,
            plan.rule.value,
            plan.affected_files,
            len(plan.new_folders),
        )
        return plan


def generate_plan(
    snapshot: Iterable[FileNode],
    rule: OrganizationRule | str,
    options: RuleOptions | Mapping[str, Any] | None = None,
    root_path: str = "",
) -> OrganizationPlan:
    """Functional shortcut for ``OrganizerPlanner().build_plan``."""

    return OrganizerPlanner().build_plan(snapshot, rule, options, root_path=root_path)


__all__ = ["OrganizerPlanner", "RULE_DESCRIPTIONS", "destination_path", "generate_plan"]
