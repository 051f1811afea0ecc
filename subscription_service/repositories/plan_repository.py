"""Plan repository - provides access to subscription plans from configuration."""

from typing import Dict, List, Optional

from subscription_service.config import Config
from subscription_service.models import SubscriptionPlan


class PlanNotFoundError(Exception):
    """Raised when a plan is not found in the repository."""

    pass


class PlanRepository:
    """Repository for subscription plan definitions.

    Indexes plans by id on load. Read-only after construction.
    """

    def __init__(self, plans: List[SubscriptionPlan]):
        self._plans_by_id: Dict[str, SubscriptionPlan] = {plan.id: plan for plan in plans}

    @classmethod
    def from_config(cls, config: Config) -> "PlanRepository":
        return cls(config.plans)

    def get_by_id(self, plan_id: str) -> SubscriptionPlan:
        """Get plan by id.

        Raises:
            PlanNotFoundError: If plan id not found
        """
        plan = self._plans_by_id.get(plan_id)
        if plan is None:
            raise PlanNotFoundError(
                f"Plan not found: {plan_id}. "
                f"Available plans: {list(self._plans_by_id.keys())}"
            )
        return plan

    def find_by_id(self, plan_id: str) -> Optional[SubscriptionPlan]:
        """Find plan by id (returns None if not found)."""
        return self._plans_by_id.get(plan_id)

    def get_all(self) -> List[SubscriptionPlan]:
        return list(self._plans_by_id.values())

    def get_active_plans(self) -> List[SubscriptionPlan]:
        """Plans open for new subscriptions."""
        return [plan for plan in self._plans_by_id.values() if plan.is_active]

    def __len__(self) -> int:
        return len(self._plans_by_id)

    def __contains__(self, plan_id: str) -> bool:
        return plan_id in self._plans_by_id

    def __repr__(self) -> str:
        return f"PlanRepository(plans={len(self._plans_by_id)})"
