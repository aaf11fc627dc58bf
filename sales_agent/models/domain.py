"""Pydantic domain models with strict validation."""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from sales_agent.models.document import ProposalDocument


class Actor(str, Enum):
    """Originator of an utterance or turn record."""
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


class IntentType(str, Enum):
    """Closed set of classified intents."""
    CREATE_PROPOSAL = "CREATE_PROPOSAL"
    APPLY_DISCOUNT = "APPLY_DISCOUNT"
    REQUEST_APPROVAL = "REQUEST_APPROVAL"
    UNKNOWN = "UNKNOWN"


class ViewTag(str, Enum):
    """Workspace view the presentation layer should show."""
    EMAIL = "email_view"
    DRAFTING = "drafting_view"
    APPROVAL = "approval_view"


class ApprovalStatus(str, Enum):
    """Approval status enumeration."""
    NONE = "NONE"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


TERMINAL_APPROVAL_STATUSES = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
    ApprovalStatus.EXPIRED,
    ApprovalStatus.CANCELLED,
})


class ActionCategory(str, Enum):
    """Side-effect category of an action record."""
    CRM_LOOKUP = "crm_lookup"
    POLICY_CHECK = "policy_check"
    DOCUMENT_GENERATION = "generate_doc"
    APPROVAL_PING = "approval_ping"


class ActionStatus(str, Enum):
    """Outcome of an action record."""
    PENDING = "pending"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Utterance(BaseModel):
    """Raw text submitted into the core."""
    text: str = Field(..., description="Free text of the utterance")
    actor: Actor = Field(Actor.USER, description="Originating actor")

    @field_validator("actor")
    @classmethod
    def validate_actor(cls, v: Actor) -> Actor:
        """Utterances come from the user or the system, never the agent."""
        if v == Actor.AGENT:
            raise ValueError("utterance actor must be user or system")
        return v

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class Intent(BaseModel):
    """Classified purpose of an utterance."""
    type: IntentType = Field(..., description="Intent type")
    discount_percent: Optional[int] = Field(None, ge=0, validate_default=True, description="Requested discount for APPLY_DISCOUNT")

    @field_validator("discount_percent")
    @classmethod
    def validate_discount_percent(cls, v: Optional[int], info) -> Optional[int]:
        """Validate discount_percent is present exactly when type is APPLY_DISCOUNT."""
        intent_type = info.data.get("type")
        if intent_type == IntentType.APPLY_DISCOUNT and v is None:
            raise ValueError("discount_percent must be provided for APPLY_DISCOUNT")
        if intent_type != IntentType.APPLY_DISCOUNT and v is not None:
            raise ValueError("discount_percent is only valid for APPLY_DISCOUNT")
        return v

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class ProposalParameters(BaseModel):
    """Inputs the proposal document is generated from."""
    client_name: str = Field(..., description="Client the proposal is addressed to")
    base_total: float = Field(..., gt=0, description="Undiscounted deal size")
    discount_percent: int = Field(0, ge=0, le=100, description="Applied discount percent")
    approval_status: ApprovalStatus = Field(ApprovalStatus.NONE, description="Approval status of the discount")

    @property
    def discount_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class PolicyVerdict(BaseModel):
    """Result of evaluating a discount against the pricing policy."""
    auto_approved: bool = Field(..., description="Whether the discount is within the auto-approval limit")
    threshold_percent: int = Field(..., ge=0, description="Auto-approval limit")
    approver: Optional[str] = Field(None, description="Escalation approver when not auto-approved")

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class ApprovalRequest(BaseModel):
    """Approval domain model."""
    approval_id: str = Field(..., description="Unique approval identifier")
    status: ApprovalStatus = Field(..., description="Approval status")
    requested_percent: int = Field(..., ge=0, description="Discount percent awaiting approval")
    approver: str = Field(..., description="Approver the request was sent to")
    created_at: datetime = Field(..., description="Creation timestamp")
    resolved_at: Optional[datetime] = Field(None, description="Resolution timestamp")

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class ActionRecord(BaseModel):
    """A discrete side-effecting action performed during a turn."""
    label: str = Field(..., description="Short human-readable label")
    category: ActionCategory = Field(..., description="Action category")
    status: ActionStatus = Field(..., description="Action outcome")
    detail: str = Field("", description="Detail shown next to the label")

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class TurnRecord(BaseModel):
    """One entry of the conversation history."""
    id: str = Field(..., description="Turn identifier, ordered by creation")
    actor: Actor = Field(..., description="Who produced the turn")
    text: str = Field(..., description="Displayed text")
    reasoning_steps: List[str] = Field(default_factory=list, description="Narrated reasoning steps")
    actions: List[ActionRecord] = Field(default_factory=list, description="Actions performed")

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class SessionState(BaseModel):
    """Versioned conversation state. Every change produces a new version."""
    session_id: str = Field(..., description="Conversation identifier")
    version: int = Field(0, ge=0, description="Monotonic version number")
    history: List[TurnRecord] = Field(default_factory=list, description="Append-only turn history")
    proposal: ProposalParameters = Field(..., description="Current proposal parameters")
    active_approval: Optional[ApprovalRequest] = Field(None, description="Current approval request")
    current_view: ViewTag = Field(ViewTag.EMAIL, description="Current workspace view")
    document: Optional[ProposalDocument] = Field(None, description="Document generated from the proposal")

    model_config = {"extra": "forbid", "strict": True, "frozen": True}
