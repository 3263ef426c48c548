"""
PublishState - Process-wide registry of previewed plans and their cancel flags.

Preview and execute are separate calls; this object is what connects them.
Every read and write happens under one lock.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .errors import PlanBusyError, PlanNotFoundError
from .planner import PublishPlan


@dataclass
class _Entry:
    plan: PublishPlan
    staging_dir: Optional[Path] = None
    running: bool = False


class PublishState:
    """
    Registry of plans keyed by plan id.

    A plan is registered by preview and removed after a completed execute or
    an explicit discard. Cancelled plans stay registered with their flag set.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._plans: Dict[str, _Entry] = {}
        self._cancelled: Dict[str, bool] = {}

    def register(self, plan: PublishPlan, staging_dir: Optional[Path] = None) -> None:
        """Store a freshly built plan with its cancel flag cleared."""
        with self._lock:
            self._plans[plan.plan_id] = _Entry(plan=plan, staging_dir=staging_dir)
            self._cancelled[plan.plan_id] = False

    def get(self, plan_id: str) -> PublishPlan:
        """
        Raises:
            PlanNotFoundError: if no plan is registered under `plan_id`
        """
        with self._lock:
            entry = self._plans.get(plan_id)
            if entry is None:
                raise PlanNotFoundError(plan_id)
            return entry.plan

    def __contains__(self, plan_id: str) -> bool:
        with self._lock:
            return plan_id in self._plans

    def __len__(self) -> int:
        with self._lock:
            return len(self._plans)

    def begin_execute(self, plan_id: str) -> PublishPlan:
        """
        Mark a plan as executing.

        Raises:
            PlanNotFoundError: if the plan is unknown
            PlanBusyError: if another execute of the same plan is running
        """
        with self._lock:
            entry = self._plans.get(plan_id)
            if entry is None:
                raise PlanNotFoundError(plan_id)
            if entry.running:
                raise PlanBusyError(plan_id)
            entry.running = True
            return entry.plan

    def end_execute(self, plan_id: str) -> None:
        """Clear the executing mark, if the plan is still registered."""
        with self._lock:
            entry = self._plans.get(plan_id)
            if entry is not None:
                entry.running = False

    def cancel(self, plan_id: str) -> None:
        """
        Request cancellation. Honored before the next upload or delete.

        Ids that are not registered are ignored.
        """
        with self._lock:
            if plan_id in self._plans:
                self._cancelled[plan_id] = True

    def is_cancelled(self, plan_id: str) -> bool:
        with self._lock:
            return self._cancelled.get(plan_id, False)

    def remove(self, plan_id: str) -> Optional[Path]:
        """
        Forget a plan and its flag.

        Returns:
            The plan's staging directory, for the caller to delete
        """
        with self._lock:
            entry = self._plans.pop(plan_id, None)
            self._cancelled.pop(plan_id, None)
            return entry.staging_dir if entry else None
