"""FastAPI request/response schemas."""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class CreateConversationRequest(BaseModel):
    """Conversation creation schema."""
    conversation_id: Optional[str] = Field(None, description="Optional conversation ID")


class UtteranceRequest(BaseModel):
    """Utterance submission schema."""
    text: str = Field(..., description="User utterance")


class ConversationResponse(BaseModel):
    """Conversation snapshot schema."""
    conversation_id: str = Field(..., description="Conversation ID")
    is_composing: bool = Field(..., description="Whether the agent is composing a reply")
    state: Dict[str, Any] = Field(..., description="Current session state")


class ApprovalDecisionRequest(BaseModel):
    """Approval decision schema."""
    status: str = Field(..., description="Approval status: APPROVED or REJECTED")


class ApprovalDecisionResponse(BaseModel):
    """Approval decision response schema."""
    status: str = Field(..., description="Approval status")
    message: str = Field(..., description="Status message")


class ConversationListItem(BaseModel):
    """Conversation list item schema."""
    conversation_id: str = Field(..., description="Conversation ID")
    turns: int = Field(..., description="Number of turns in the history")
    current_view: str = Field(..., description="Current workspace view")


class ConversationListResponse(BaseModel):
    """Conversation list response schema."""
    conversations: list[ConversationListItem] = Field(..., description="List of conversations")


class DocumentResponse(BaseModel):
    """Proposal document response schema."""
    conversation_id: str = Field(..., description="Conversation ID")
    document: Dict[str, Any] = Field(..., description="Structured proposal document")
