"""LangGraph node implementations."""
import logging
import re
from typing import Dict, Any, List
from langsmith import traceable
from sales_agent.approvals.service import ApprovalService
from sales_agent.config import settings
from sales_agent.documents.generator import ProposalGenerator
from sales_agent.graph.state import TurnState
from sales_agent.intents.classifier import IntentClassifier
from sales_agent.models.domain import (
    ActionCategory,
    ActionRecord,
    ActionStatus,
    ApprovalStatus,
    SessionState,
    Utterance,
    ViewTag,
)
from sales_agent.policy.engine import PolicyEngine

logger = logging.getLogger(__name__)

PROPOSAL_TEMPLATE = "Enterprise_SaaS_v4"
PRICING_PERIOD = "2026-Q1"

FALLBACK_REPLY = (
    "I can help you draft proposals, check pricing, or coordinate approvals. "
    "Try asking me to 'Create a proposal'."
)


def approver_display_name(approver: str) -> str:
    """'Sarah Jenkins, VP Sales' -> 'Sarah Jenkins'."""
    return approver.split(",")[0].strip()


def approver_first_name(approver: str) -> str:
    return approver_display_name(approver).split()[0]


def approver_short_name(approver: str) -> str:
    """'Sarah Jenkins, VP Sales' -> 'S. Jenkins'."""
    parts = approver_display_name(approver).split()
    if len(parts) < 2:
        return parts[0]
    return f"{parts[0][0]}. {parts[-1]}"


def approver_handle(approver: str) -> str:
    """'Sarah Jenkins, VP Sales' -> 'sjenkins'."""
    parts = approver_display_name(approver).lower().split()
    if len(parts) < 2:
        return parts[0]
    return f"{parts[0][0]}{parts[-1]}"


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def _cancel_pending(session: SessionState, approval_service: ApprovalService) -> List[str]:
    """Cancel the session's still-pending request, if any, and narrate it."""
    previous = session.active_approval
    if previous is None or previous.status != ApprovalStatus.PENDING:
        return []
    approval_service.cancel(previous.approval_id)
    return [f"Supersede: Cancel {previous.approval_id}"]


@traceable(name="classify_intent")
def classify_intent(state: TurnState, classifier: IntentClassifier) -> Dict[str, Any]:
    """
    Classify the utterance of this turn.

    Args:
        state: Current turn state
        classifier: Intent classifier

    Returns:
        Updated state with intent and next_step
    """
    intent = classifier.classify(Utterance(text=state["utterance"]))
    return {
        "intent": intent,
        "next_step": intent.type.value,
    }


@traceable(name="create_proposal")
def create_proposal(
    state: TurnState,
    generator: ProposalGenerator,
    approval_service: ApprovalService,
) -> Dict[str, Any]:
    """
    Draft a fresh proposal at zero discount.

    Args:
        state: Current turn state
        generator: Proposal document generator
        approval_service: Approval service instance

    Returns:
        Updated state with narration and session updates
    """
    session = state["session"]
    superseded = _cancel_pending(session, approval_service)
    client = session.proposal.client_name
    proposal = session.proposal.model_copy(
        update={"discount_percent": 0, "approval_status": ApprovalStatus.NONE}
    )

    return {
        "reply": (
            "I'm drafting the proposal now. I'm pulling the latest pricing from the ERP "
            f"and {client}'s usage stats from Salesforce."
        ),
        "reasoning_steps": superseded + [
            "Context Switch: Word API",
            f"Fetch: GET /crm/{_slug(client)}/details",
            f"Fetch: GET /finance/pricing/{PRICING_PERIOD}",
            f"Logic: Select Template '{PROPOSAL_TEMPLATE}'",
        ],
        "actions": [
            ActionRecord(
                label="CRM Data Retrieved",
                category=ActionCategory.CRM_LOOKUP,
                status=ActionStatus.SUCCESS,
                detail=f"{client} ID: {settings.client_crm_id}",
            ),
            ActionRecord(
                label="Pricing Validated",
                category=ActionCategory.POLICY_CHECK,
                status=ActionStatus.SUCCESS,
                detail="Standard Tier Applied",
            ),
            ActionRecord(
                label="Draft Generated",
                category=ActionCategory.DOCUMENT_GENERATION,
                status=ActionStatus.SUCCESS,
                detail="v0.1 created",
            ),
        ],
        "updates": {
            "proposal": proposal,
            "document": generator.render(proposal),
            "current_view": ViewTag.DRAFTING,
            "active_approval": None,
        },
    }


@traceable(name="apply_discount")
def apply_discount(
    state: TurnState,
    policy_engine: PolicyEngine,
    generator: ProposalGenerator,
    approval_service: ApprovalService,
) -> Dict[str, Any]:
    """
    Apply the requested discount and check it against the pricing policy.

    A new discount invalidates any earlier approval, which covered a
    specific percent.

    Args:
        state: Current turn state
        policy_engine: Pricing policy engine
        generator: Proposal document generator
        approval_service: Approval service instance

    Returns:
        Updated state with narration and session updates
    """
    session = state["session"]
    superseded = _cancel_pending(session, approval_service)
    percent = min(state["intent"].discount_percent, 100)
    proposal = session.proposal.model_copy(
        update={"discount_percent": percent, "approval_status": ApprovalStatus.NONE}
    )
    verdict = policy_engine.evaluate(percent)
    threshold = verdict.threshold_percent

    updates: Dict[str, Any] = {
        "proposal": proposal,
        "document": generator.render(proposal),
        "active_approval": None,
    }

    if not verdict.auto_approved:
        name = approver_display_name(verdict.approver)
        logger.info(f"POLICY: {percent}% exceeds {threshold}% limit, approver {verdict.approver}")
        updates["current_view"] = ViewTag.DRAFTING
        return {
            "reply": (
                f"I've updated the draft with a {percent}% discount. However, this exceeds the "
                f"{threshold}% auto-approval limit defined in the Northstar Sales Policy. "
                f"I can draft an approval request to {name} for you."
            ),
            "reasoning_steps": superseded + [
                f"Action: Update Document (Discount: {percent}%)",
                f"Check: Policy Engine (Max: {threshold}%)",
                "Alert: Threshold Exceeded",
                f"Identify Approver: {name}",
            ],
            "actions": [
                ActionRecord(
                    label="Policy Warning",
                    category=ActionCategory.POLICY_CHECK,
                    status=ActionStatus.WARNING,
                    detail=f">{threshold}% requires approval from {verdict.approver}",
                ),
            ],
            "updates": updates,
        }

    logger.info(f"POLICY: {percent}% within {threshold}% limit")
    return {
        "reply": f"Applied a {percent}% discount. This is within your approval limit.",
        "reasoning_steps": superseded + [
            f"Action: Update Document (Discount: {percent}%)",
            f"Check: Policy Engine (Max: {threshold}%)",
        ],
        "actions": [
            ActionRecord(
                label="Policy Check Passed",
                category=ActionCategory.POLICY_CHECK,
                status=ActionStatus.SUCCESS,
                detail="Auto-approved",
            ),
        ],
        "updates": updates,
    }


@traceable(name="request_approval")
def request_approval(
    state: TurnState,
    policy_engine: PolicyEngine,
    generator: ProposalGenerator,
    approval_service: ApprovalService,
) -> Dict[str, Any]:
    """
    Open an approval request for the current discount.

    A still-pending request is cancelled first so that at most one
    request is active per session.

    Args:
        state: Current turn state
        policy_engine: Pricing policy engine
        generator: Proposal document generator
        approval_service: Approval service instance

    Returns:
        Updated state with narration, session updates and opened_approval_id
    """
    session = state["session"]
    percent = session.proposal.discount_percent
    verdict = policy_engine.evaluate(percent)

    if verdict.auto_approved:
        logger.info(f"APPROVALS: {percent}% already within auto-approval limit, no request opened")
        return {
            "reply": (
                f"No approval is needed. The current {percent}% discount is within the "
                f"{verdict.threshold_percent}% auto-approval limit."
            ),
            "reasoning_steps": [f"Check: Policy Engine (Max: {verdict.threshold_percent}%)"],
            "actions": [
                ActionRecord(
                    label="Policy Check Passed",
                    category=ActionCategory.POLICY_CHECK,
                    status=ActionStatus.SUCCESS,
                    detail="Auto-approved",
                ),
            ],
            "updates": {},
        }

    reasoning_steps = _cancel_pending(session, approval_service)
    approval = approval_service.create_approval(
        requested_percent=percent,
        approver=verdict.approver,
    )
    proposal = session.proposal.model_copy(update={"approval_status": ApprovalStatus.PENDING})
    name = approver_display_name(verdict.approver)

    reasoning_steps.extend([
        "Context Switch: Teams API",
        f"Action: Post Adaptive Card to user:{approver_handle(verdict.approver)}",
        "Monitor: Webhook for Approval Status",
    ])

    return {
        "reply": (
            f"I've sent a card to {name} via Teams with the proposal summary and justification. "
            "I'll let you know as soon as there is a response."
        ),
        "reasoning_steps": reasoning_steps,
        "actions": [
            ActionRecord(
                label="Approval Request Sent",
                category=ActionCategory.APPROVAL_PING,
                status=ActionStatus.SUCCESS,
                detail=f"Approval ID: {approval.approval_id}",
            ),
        ],
        "updates": {
            "proposal": proposal,
            "document": generator.render(proposal),
            "current_view": ViewTag.APPROVAL,
            "active_approval": approval,
        },
        "opened_approval_id": approval.approval_id,
    }


@traceable(name="fallback")
def fallback(state: TurnState) -> Dict[str, Any]:
    """Reply with the capability hint; nothing in the session changes."""
    return {
        "reply": FALLBACK_REPLY,
        "reasoning_steps": [],
        "actions": [],
        "updates": {},
    }
