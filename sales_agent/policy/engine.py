"""Pricing policy evaluation."""
from typing import Optional
from langsmith import traceable
from sales_agent.config import settings
from sales_agent.models.domain import PolicyVerdict


class PolicyEngine:
    """Evaluates discount requests against the auto-approval threshold."""

    def __init__(
        self,
        threshold_percent: Optional[int] = None,
        approver: Optional[str] = None,
    ):
        """
        Initialize policy engine.

        Args:
            threshold_percent: Highest discount approvable without escalation
            approver: Identity that discounts above the threshold escalate to
        """
        self.threshold_percent = (
            settings.policy_threshold_percent if threshold_percent is None else threshold_percent
        )
        self.approver = settings.policy_approver if approver is None else approver

    @traceable(name="evaluate_discount_policy")
    def evaluate(self, discount_percent: int) -> PolicyVerdict:
        """
        Evaluate a discount percent.

        Args:
            discount_percent: Requested discount

        Returns:
            PolicyVerdict naming the approver when escalation is required
        """
        auto_approved = discount_percent <= self.threshold_percent
        return PolicyVerdict(
            auto_approved=auto_approved,
            threshold_percent=self.threshold_percent,
            approver=None if auto_approved else self.approver,
        )

    def requires_approval(self, discount_percent: int) -> bool:
        return not self.evaluate(discount_percent).auto_approved
