"""
Plan tracker: the adapter between the document store and the core engine.

PlanTracker keeps the latest plan, tracking and plan-list snapshots in sync
through store subscriptions, and turns user intents (select, create, delete,
save, toggle, change cycle) into whole-document writes. Local snapshots are
only replaced by store notifications, i.e. after a write has succeeded.
"""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from loguru import logger

from .core.archiver import SaveDecision, prepare_save
from .core.config import PLANS_COLLECTION, TRACKING_COLLECTION
from .core.grid import is_toggleable, status_at, toggle_cell
from .core.models import (
    Activity,
    ChartData,
    CycleSummary,
    Direction,
    GridCell,
    GridView,
    Plan,
    TrackingData,
)
from .core.navigator import advance, visible_columns
from .core.resolver import plans_for_cycles
from .core.summary import build_chart, summarize
from .io.document_store import DocumentStore, Key, Unsubscribe, read_json_file
from .io.errors import LoadFailure, SaveFailure, TrackerError
from .io.serializers import (
    dict_to_plan,
    dict_to_tracking,
    history_to_dict,
    new_plan_document,
    new_tracking_document,
    plan_to_dict,
    tracking_to_dict,
)


class PlanTracker:
    """
    Per-user session over the plans stored in a DocumentStore.

    Call open() before use and close() when done; after close() no store
    callback reaches this object.

    A read that fails during a later store notification does not raise; it
    is logged and kept in last_error until the next open() or select_plan().
    """

    def __init__(self, store: DocumentStore, user_id: str):
        """
        Initialize the tracker.

        Args:
            store: Document store holding the user's plans
            user_id: Established user identity
        """
        self.store = store
        self.user_id = user_id
        self.plans: list[tuple[str, Plan]] = []
        self.active_plan_id: str | None = None
        self.plan: Plan | None = None
        self.tracking: TrackingData | None = None
        self.last_error: TrackerError | None = None
        self._plans_unsub: Unsubscribe | None = None
        self._doc_unsubs: list[Unsubscribe] = []

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @property
    def user_scope(self) -> Key:
        return ("users", self.user_id)

    @property
    def plans_scope(self) -> Key:
        return self.user_scope + (PLANS_COLLECTION,)

    def plan_key(self, plan_id: str) -> Key:
        return self.plans_scope + (plan_id,)

    def tracking_key(self, plan_id: str) -> Key:
        return self.user_scope + (TRACKING_COLLECTION, plan_id)

    @property
    def state_path(self) -> Path:
        """Per-user side file remembering the selected plan."""
        return self.store.root.joinpath(*self.user_scope) / "state.json"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """
        Subscribe to the plan list and select the remembered or first plan.

        Raises:
            LoadFailure: If the initial load fails
        """
        self.last_error = None
        self._plans_unsub = self.store.subscribe_collection(
            self.plans_scope, self._on_plans, self._on_load_error
        )
        if self.last_error is not None:
            self._plans_unsub()
            self._plans_unsub = None
            self._raise_pending()

        state = read_json_file(self.state_path) or {}
        remembered = state.get("active_plan_id")
        if remembered and self._has_plan(remembered):
            self.select_plan(remembered)
        elif self.plans:
            self.select_plan(self.plans[0][0])

    def close(self) -> None:
        """Cancel every subscription."""
        self._unsubscribe_docs()
        if self._plans_unsub is not None:
            self._plans_unsub()
            self._plans_unsub = None

    def __enter__(self) -> "PlanTracker":
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Subscription callbacks
    # ------------------------------------------------------------------

    def _on_plans(self, docs: list[tuple[str, dict[str, Any]]]) -> None:
        self.plans = [(doc_id, dict_to_plan(doc)) for doc_id, doc in docs]
        if self.active_plan_id is not None and not self._has_plan(self.active_plan_id):
            self._unsubscribe_docs()
            self.active_plan_id = None
            self.plan = None
            self.tracking = None

    def _on_plan(self, doc: dict[str, Any] | None) -> None:
        self.plan = dict_to_plan(doc) if doc is not None else None

    def _on_tracking(self, doc: dict[str, Any] | None) -> None:
        self.tracking = dict_to_tracking(doc)

    def _on_load_error(self, error: LoadFailure) -> None:
        # Prior snapshots stay as they were.
        logger.error("Load failed", user=self.user_id, key=error.key, reason=error.reason)
        self.last_error = error

    def _raise_pending(self) -> None:
        if self.last_error is not None:
            error, self.last_error = self.last_error, None
            raise error

    def _unsubscribe_docs(self) -> None:
        for unsub in self._doc_unsubs:
            unsub()
        self._doc_unsubs = []

    def _has_plan(self, plan_id: str) -> bool:
        return any(doc_id == plan_id for doc_id, _ in self.plans)

    # ------------------------------------------------------------------
    # Intents: plan selection and lifecycle
    # ------------------------------------------------------------------

    def select_plan(self, plan_id: str) -> None:
        """
        Make a plan active and subscribe to its documents.

        Raises:
            KeyError: If the user has no plan with that id
            LoadFailure: If the plan or tracking document cannot be read
        """
        if not self._has_plan(plan_id):
            raise KeyError(f"No plan with id {plan_id!r}")

        # Both reads must succeed before the current selection is dropped.
        self.store.get_once(self.plan_key(plan_id))
        self.store.get_once(self.tracking_key(plan_id))

        self._unsubscribe_docs()
        self.last_error = None
        self.active_plan_id = plan_id
        self.plan = None
        self.tracking = None
        self._doc_unsubs = [
            self.store.subscribe(self.plan_key(plan_id), self._on_plan, self._on_load_error),
            self.store.subscribe(self.tracking_key(plan_id), self._on_tracking, self._on_load_error),
        ]
        self._remember_active(plan_id)
        logger.info("Plan selected", user=self.user_id, plan_id=plan_id)
        self._raise_pending()

    def _remember_active(self, plan_id: str | None) -> None:
        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_path, "w", encoding="utf-8") as f:
                json.dump({"active_plan_id": plan_id}, f, indent=2)
        except OSError as e:
            raise SaveFailure("remember active plan", str(self.state_path), str(e)) from e

    def create_plan(self) -> str:
        """
        Create a plan with its empty tracking document and select it.

        Returns:
            The new plan id

        Raises:
            SaveFailure: If either document cannot be written; a plan whose
                tracking document failed is removed again
        """
        plan_id = self.store.create_new(self.plans_scope, new_plan_document(len(self.plans)))
        try:
            self.store.set_whole(self.tracking_key(plan_id), new_tracking_document())
        except SaveFailure:
            self.store.delete(self.plan_key(plan_id))
            raise
        logger.info("Plan created", user=self.user_id, plan_id=plan_id)
        self.select_plan(plan_id)
        return plan_id

    def delete_plan(self) -> bool:
        """
        Delete the active plan and its tracking document.

        Refused when it is the user's only plan.

        Returns:
            True if deleted, False if refused or nothing is selected
        """
        plan_id = self.active_plan_id
        if plan_id is None or len(self.plans) <= 1:
            logger.warning(
                "Plan deletion refused", user=self.user_id, plan_id=plan_id, plans=len(self.plans)
            )
            return False

        self._unsubscribe_docs()
        self.store.delete(self.plan_key(plan_id))
        self.store.delete(self.tracking_key(plan_id))
        logger.info("Plan deleted", user=self.user_id, plan_id=plan_id)

        self.active_plan_id = None
        self.plan = None
        self.tracking = None
        remaining = [doc_id for doc_id, _ in self.plans if doc_id != plan_id]
        if remaining:
            self.select_plan(remaining[0])
        else:
            self._remember_active(None)
        return True

    # ------------------------------------------------------------------
    # Intents: editing and tracking
    # ------------------------------------------------------------------

    def _require_active(self, operation: str) -> str:
        if self.active_plan_id is None:
            raise SaveFailure(operation, "/".join(self.plans_scope), "no active plan")
        return self.active_plan_id

    def save_plan(
        self,
        name: Any,
        sessions: Any,
        activities: Sequence[Activity | dict[str, Any]],
    ) -> SaveDecision:
        """
        Save editor input as the active plan, archiving the old plan if needed.

        The history write is applied before the plan write.

        Raises:
            SaveFailure: If there is no active plan or any read/write fails
        """
        plan_id = self._require_active("save plan")
        raw = {
            "name": name,
            "sessions": sessions,
            "activities": [a.to_dict() if isinstance(a, Activity) else a for a in activities],
        }

        try:
            old_doc = self.store.get_once(self.plan_key(plan_id))
            tracking = dict_to_tracking(self.store.get_once(self.tracking_key(plan_id)))
        except LoadFailure as e:
            raise SaveFailure("save plan", e.key, e.reason) from e

        decision = prepare_save(raw, old_doc, tracking.plan_history, tracking.current_cycle_index)

        if decision.history is not None:
            self.store.set_whole(
                self.tracking_key(plan_id),
                {"planHistory": history_to_dict(decision.history)},
                merge=True,
            )
            logger.info(
                "Archived previous plan",
                user=self.user_id,
                plan_id=plan_id,
                cycle=tracking.current_cycle_index,
            )
        self.store.set_whole(self.plan_key(plan_id), plan_to_dict(decision.plan))
        logger.info("Plan saved", user=self.user_id, plan_id=plan_id, archived=decision.archived)
        return decision

    def toggle_cell(self, session_index: int, cycle_index: int) -> bool:
        """
        Advance one attendance cell to its next status.

        Returns:
            True if a write happened, False for a non-writable cell

        Raises:
            SaveFailure: If the write fails; the local snapshot is left as it was
        """
        if self.active_plan_id is None or self.plan is None or self.tracking is None:
            return False
        if not is_toggleable(self.plan, self.tracking, session_index, cycle_index):
            return False

        updated = toggle_cell(self.plan, self.tracking, session_index, cycle_index)
        self.store.set_whole(self.tracking_key(self.active_plan_id), tracking_to_dict(updated))
        logger.debug(
            "Cell toggled",
            plan_id=self.active_plan_id,
            session=session_index,
            cycle=cycle_index,
        )
        return True

    def change_cycle(self, direction: Direction) -> TrackingData | None:
        """
        Move the current cycle pointer and persist it.

        Returns:
            The written tracking snapshot, or None if nothing is loaded

        Raises:
            SaveFailure: If the write fails; the local snapshot is left as it was
        """
        if self.active_plan_id is None or self.tracking is None:
            return None
        updated = advance(direction, self.tracking)
        self.store.set_whole(self.tracking_key(self.active_plan_id), tracking_to_dict(updated))
        logger.info(
            "Cycle changed",
            plan_id=self.active_plan_id,
            direction=direction,
            cycle=updated.current_cycle_index,
        )
        return updated

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def grid_view(self) -> GridView | None:
        """Render-ready attendance grid, or None if no plan is loaded."""
        if self.plan is None or self.tracking is None:
            return None
        plan, tracking = self.plan, self.tracking
        current = tracking.current_cycle_index
        columns = visible_columns(tracking.highest_cycle_index)
        column_plans = plans_for_cycles(columns, plan, tracking.plan_history)

        rows = []
        for s, activity in enumerate(plan.activities):
            cells = []
            for c, plan_c in enumerate(column_plans):
                past_activity = plan_c.activities[s] if s < len(plan_c.activities) else None
                cells.append(
                    GridCell(
                        status=status_at(tracking.grid, s, c),
                        is_rest=activity.is_rest,
                        clickable=not activity.is_rest and c == current,
                        upcoming=c > current,
                        historical_diff=c < current and past_activity != activity,
                    )
                )
            rows.append(cells)

        return GridView(
            plan=plan,
            current_cycle_index=current,
            highest_cycle_index=tracking.highest_cycle_index,
            columns=columns,
            rows=rows,
        )

    def summary(self) -> list[CycleSummary]:
        """Per-cycle counts for the active plan (empty if nothing is loaded)."""
        if self.plan is None or self.tracking is None:
            return []
        return summarize(self.plan, self.tracking)

    def chart(self, total_height: float | None = None) -> ChartData:
        """Scaled chart data for summary()."""
        if total_height is None:
            return build_chart(self.summary())
        return build_chart(self.summary(), total_height)
