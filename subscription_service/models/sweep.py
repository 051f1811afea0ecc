"""Outcome of one scheduled sweep."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ItemFailure(BaseModel):
    """A single subscription the sweep could not process."""

    subscription_id: str
    error: str
    error_type: str


class SweepResult(BaseModel):
    """What a sweep selected, changed, skipped, and failed on.

    A run-level ``error`` means the sweep was aborted; ``affected_ids`` then
    lists what was done before the abort. Per-item ``failures`` do not abort
    the run. ``skipped_ids`` are selected subscriptions another writer changed
    before the sweep could save them; they are left as that writer saved them.
    """

    sweep: str = Field(..., description="Sweep name")
    started_at: datetime = Field(..., description="Clock time the sweep ran against")
    finished_at: Optional[datetime] = Field(None, description="Clock time the sweep finished")
    selected: int = Field(default=0, description="Number of subscriptions selected")
    affected_ids: list[str] = Field(default_factory=list, description="Subscriptions changed or notified")
    skipped_ids: list[str] = Field(default_factory=list, description="Subscriptions changed concurrently")
    failures: list[ItemFailure] = Field(default_factory=list, description="Per-item failures")
    error: Optional[str] = Field(None, description="Run-level failure that aborted the sweep")

    @property
    def affected(self) -> int:
        return len(self.affected_ids)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failures

    def record_failure(self, subscription_id: str, exc: Exception) -> None:
        self.failures.append(
            ItemFailure(subscription_id=subscription_id, error=str(exc), error_type=type(exc).__name__)
        )
