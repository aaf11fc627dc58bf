"""LangGraph state definition."""
from typing import TypedDict, List, Dict, Any, Optional
from sales_agent.models.domain import ActionRecord, Intent, SessionState


class TurnState(TypedDict):
    """State for one pass of the turn graph."""
    # Input
    utterance: str
    session: SessionState

    # Classification
    intent: Optional[Intent]
    next_step: str

    # Output narration
    reply: str
    reasoning_steps: List[str]
    actions: List[ActionRecord]

    # SessionState fields to replace (proposal, document, current_view, active_approval)
    updates: Dict[str, Any]

    # Set when a new approval request entered PENDING during this turn
    opened_approval_id: Optional[str]
