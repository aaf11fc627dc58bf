"""Export domain and document models."""
from sales_agent.models.domain import (
    Actor,
    IntentType,
    Intent,
    ViewTag,
    ApprovalStatus,
    TERMINAL_APPROVAL_STATUSES,
    ActionCategory,
    ActionStatus,
    Utterance,
    ProposalParameters,
    PolicyVerdict,
    ApprovalRequest,
    ActionRecord,
    TurnRecord,
    SessionState,
)
from sales_agent.models.document import (
    SectionKind,
    RowKind,
    PricingRow,
    DocumentSection,
    ProposalDocument,
)

__all__ = [
    "Actor",
    "IntentType",
    "Intent",
    "ViewTag",
    "ApprovalStatus",
    "TERMINAL_APPROVAL_STATUSES",
    "ActionCategory",
    "ActionStatus",
    "Utterance",
    "ProposalParameters",
    "PolicyVerdict",
    "ApprovalRequest",
    "ActionRecord",
    "TurnRecord",
    "SessionState",
    "SectionKind",
    "RowKind",
    "PricingRow",
    "DocumentSection",
    "ProposalDocument",
]
