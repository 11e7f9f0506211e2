"""Plan lifecycle: preview, apply, cancel and undo of the live plan."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from smartstore.history.ledger import HistoryLedger
from smartstore.history.models import HistoryBatch
from smartstore.snapshot.models import FileNode

from .errors import MoveExecutionError, PlanStateError
from .executor import PlanExecutor
from .models import (
    OperationStatus,
    OrganizationPlan,
    OrganizationRule,
    PlanStatus,
    RuleOptions,
)
from .planner import OrganizerPlanner

LOGGER = logging.getLogger(__name__)

SnapshotProvider = Callable[[], list[FileNode]]


class SessionEvent(str, Enum):
    PLAN_CREATED = "plan_created"
    PLAN_CANCELLED = "plan_cancelled"
    PLAN_APPLIED = "plan_applied"
    PLAN_UNDONE = "plan_undone"


Listener = Callable[[SessionEvent, Any], None]


@dataclass(slots=True)
class ApplyResult:
    """Outcome of applying a plan.

    Attributes:
        plan: The plan after apply, in ``applied`` or ``partial`` status.
        batch: History batch of the successful moves, if any succeeded.
        applied: Number of operations that succeeded.
        failed: Number of operations that failed.
    """

    plan: OrganizationPlan
    batch: Optional[HistoryBatch]
    applied: int
    failed: int

    @property
    def is_partial(self) -> bool:
        return self.plan.status is PlanStatus.PARTIAL


class PlanSession:
    """Single owner of the live plan.

    At most one plan is live at a time; generating a preview replaces it.
    All mutations are serialized through one re-entrant lock, and listeners
    registered with ``subscribe`` are told about every transition.
    """

    def __init__(
        self,
        snapshot_provider: SnapshotProvider,
        executor: PlanExecutor,
        ledger: HistoryLedger,
        *,
        root_path: str = "",
        planner: Optional[OrganizerPlanner] = None,
    ) -> None:
        self._snapshot_provider = snapshot_provider
        self._executor = executor
        self._ledger = ledger
        self._root_path = root_path
        self._planner = planner or OrganizerPlanner()
        self._plan: Optional[OrganizationPlan] = None
        self._plan_batches: dict[str, str] = {}
        self._expanded: set[str] = set()
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ #
    # Queries                                                            #
    # ------------------------------------------------------------------ #

    @property
    def current_plan(self) -> Optional[OrganizationPlan]:
        return self._plan

    @property
    def ledger(self) -> HistoryLedger:
        return self._ledger

    @property
    def has_changes(self) -> bool:
        return self._plan is not None and not self._plan.is_empty

    @property
    def expanded_folders(self) -> frozenset[str]:
        return frozenset(self._expanded)

    def toggle_folder(self, folder: str) -> bool:
        """Flip the display expansion of ``folder`` and return the new state."""
        with self._lock:
            if folder in self._expanded:
                self._expanded.discard(folder)
                return False
            self._expanded.add(folder)
            return True

    # ------------------------------------------------------------------ #
    # Observers                                                          #
    # ------------------------------------------------------------------ #

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event: SessionEvent, payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                LOGGER.exception("Session listener failed while handling %s.", event.value)

    # ------------------------------------------------------------------ #
    # Transitions                                                        #
    # ------------------------------------------------------------------ #

    def generate_preview(
        self,
        rule: OrganizationRule | str,
        options: RuleOptions | Mapping[str, Any] | None = None,
    ) -> OrganizationPlan:
        """Build a new preview plan and make it the live plan.

        The previous live plan is discarded only once the new plan exists, so
        a configuration error leaves the session untouched.

        Raises:
            PlanConfigurationError: If the rule or options are invalid.
        """
        with self._lock:
            plan = self._planner.build_plan(
                self._snapshot_provider(),
                rule,
                options,
                root_path=self._root_path,
            )
            self._plan = plan
            self._expanded = set(plan.new_folders)
        self._emit(SessionEvent.PLAN_CREATED, plan)
        return plan

    def apply(self) -> ApplyResult:
        """Execute every pending operation of the live preview plan.

        Each operation is attempted independently; failures are recorded on
        the operation and never stop the others. Only successful moves are
        written to history.

        Raises:
            PlanStateError: If there is no live plan or it is not a preview.
        """
        with self._lock:
            plan = self._require_plan(PlanStatus.PREVIEW, "apply")

            operations = []
            for operation in plan.operations:
                if operation.status is not OperationStatus.PENDING:
                    operations.append(operation)
                    continue
                try:
                    self._executor.execute(operation)
                except (MoveExecutionError, OSError) as exc:
                    LOGGER.warning(
                        "Move failed %s -> %s: %s",
                        operation.source_path,
                        operation.destination_path,
                        exc,
                    )
                    operations.append(
                        operation.model_copy(
                            update={"status": OperationStatus.FAILED, "error": str(exc)}
                        )
                    )
                except Exception as exc:
                    LOGGER.exception(
                        "Unexpected error moving %s -> %s",
                        operation.source_path,
                        operation.destination_path,
                    )
                    operations.append(
                        operation.model_copy(
                            update={"status": OperationStatus.FAILED, "error": str(exc)}
                        )
                    )
                else:
                    operations.append(
                        operation.model_copy(update={"status": OperationStatus.APPLIED})
                    )

            succeeded = [op for op in operations if op.status is OperationStatus.APPLIED]
            failed = len(operations) - len(succeeded)
            status = PlanStatus.PARTIAL if failed else PlanStatus.APPLIED
            applied_plan = plan.model_copy(update={"operations": operations, "status": status})

            batch = None
            if succeeded:
                batch = self._ledger.add_batch(plan.name, plan.description, succeeded)
                self._plan_batches[batch.id] = applied_plan.id
            self._plan = applied_plan

        if failed:
            LOGGER.warning(
                "Plan %s partially applied: %d succeeded, %d failed.",
                applied_plan.id,
                len(succeeded),
                failed,
            )
        result = ApplyResult(
            plan=applied_plan, batch=batch, applied=len(succeeded), failed=failed
        )
        self._emit(SessionEvent.PLAN_APPLIED, result)
        return result

    def cancel(self) -> bool:
        """Discard the live preview plan.

        Returns:
            bool: ``False`` when there is no live plan.

        Raises:
            PlanStateError: If the live plan has already been applied.
        """
        with self._lock:
            if self._plan is None:
                return False
            plan = self._require_plan(PlanStatus.PREVIEW, "cancel")
            self._plan = None
            self._expanded = set()
        self._emit(SessionEvent.PLAN_CANCELLED, plan)
        return True

    def retry_failed(self) -> OrganizationPlan:
        """Create a new preview holding only the failed operations of a partial plan.

        Raises:
            PlanStateError: If the live plan is not ``partial``.
        """
        with self._lock:
            plan = self._require_plan(PlanStatus.PARTIAL, "retry")
            retried = [
                op.model_copy(update={"status": OperationStatus.PENDING, "error": None})
                for op in plan.failed_operations
            ]
            folders = list(dict.fromkeys(op.destination_folder for op in retried))
            retry_plan = OrganizationPlan(
                name=f"{plan.name} (retry)",
                description=plan.description,
                rule=plan.rule,
                root_path=plan.root_path,
                operations=retried,
                affected_files=len(retried),
                new_folders=folders,
            )
            self._plan = retry_plan
            self._expanded = set(folders)
        self._emit(SessionEvent.PLAN_CREATED, retry_plan)
        return retry_plan

    def undo_last(self) -> bool:
        """Undo the most recent batch; ``False`` when nothing is undoable."""
        with self._lock:
            batch = self._ledger.last_batch
            if batch is None:
                return False
            return self.undo_batch(batch.id)

    def undo_batch(self, batch_id: str) -> bool:
        """Undo ``batch_id`` and mark its plan undone when it is the live plan."""
        with self._lock:
            if not self._ledger.undo_batch(batch_id):
                return False
            plan_id = self._plan_batches.pop(batch_id, None)
            if self._plan is not None and self._plan.id == plan_id:
                self._plan = self._plan.model_copy(
                    update={
                        "status": PlanStatus.UNDONE,
                        "operations": [
                            op.model_copy(update={"status": OperationStatus.UNDONE})
                            if op.status is OperationStatus.APPLIED
                            else op
                            for op in self._plan.operations
                        ],
                    }
                )
        self._emit(SessionEvent.PLAN_UNDONE, batch_id)
        return True

    def _require_plan(self, status: PlanStatus, action: str) -> OrganizationPlan:
        if self._plan is None:
            raise PlanStateError(f"There is no plan to {action}.")
        if self._plan.status is not status:
            raise PlanStateError(
                f"Cannot {action} a plan in '{self._plan.status.value}' status; "
                f"expected '{status.value}'."
            )
        return self._plan


__all__ = ["ApplyResult", "Listener", "PlanSession", "SessionEvent", "SnapshotProvider"]
