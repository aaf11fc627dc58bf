"""FastAPI routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sales_agent.api.schemas import (
    ApprovalDecisionRequest,
    ApprovalDecisionResponse,
    ConversationListItem,
    ConversationListResponse,
    ConversationResponse,
    CreateConversationRequest,
    DocumentResponse,
    UtteranceRequest,
)
from sales_agent.approvals.service import InvalidApprovalTransition
from sales_agent.conversations.repository import ConversationRepository
from sales_agent.conversations.service import ConversationService
from sales_agent.models.domain import ApprovalStatus
from sales_agent.scheduling.scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)

router = APIRouter()

# Single repository for all conversations, bound to the serving event loop
_repository: Optional[ConversationRepository] = None


def get_conversation_repository() -> ConversationRepository:
    """Dependency returning the shared conversation repository."""
    global _repository
    if _repository is None:
        logger.info("Creating conversation repository (shared across all conversations)...")
        _repository = ConversationRepository(AsyncioScheduler())
    return _repository


def _get_conversation_or_404(
    conversation_id: str,
    repository: ConversationRepository,
) -> ConversationService:
    conversation = repository.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def _to_response(conversation: ConversationService) -> ConversationResponse:
    snapshot = conversation.snapshot()
    return ConversationResponse(
        conversation_id=conversation.session_id,
        is_composing=snapshot.is_composing,
        state=snapshot.state.model_dump(mode="json"),
    )


@router.post("/conversations", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: Optional[CreateConversationRequest] = None,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationResponse:
    """
    Start a new conversation with the sales agent.

    Args:
        request: Optional creation parameters
        repository: Conversation repository

    Returns:
        Initial conversation snapshot
    """
    conversation_id = request.conversation_id if request else None
    try:
        conversation = repository.create_conversation(conversation_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_response(conversation)


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationListResponse:
    """List live conversations."""
    items = []
    for conversation in repository.list_conversations():
        state = conversation.state
        items.append(ConversationListItem(
            conversation_id=conversation.session_id,
            turns=len(state.history),
            current_view=state.current_view.value,
        ))
    return ConversationListResponse(conversations=items)


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationResponse:
    """Return the current snapshot of a conversation."""
    conversation = _get_conversation_or_404(conversation_id, repository)
    return _to_response(conversation)


@router.post(
    "/conversations/{conversation_id}/utterances",
    response_model=ConversationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_utterance(
    conversation_id: str,
    request: UtteranceRequest,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ConversationResponse:
    """
    Submit a user utterance. The agent's reply arrives after the composing delay.

    Args:
        conversation_id: Conversation ID
        request: Utterance request
        repository: Conversation repository

    Returns:
        Snapshot right after submission
    """
    logger.info(f"UTTERANCE RECEIVED for {conversation_id}: {request.text}")
    conversation = _get_conversation_or_404(conversation_id, repository)
    conversation.submit_utterance(request.text)
    return _to_response(conversation)


@router.get("/conversations/{conversation_id}/document", response_model=DocumentResponse)
async def get_document(
    conversation_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> DocumentResponse:
    """Return the current proposal document."""
    conversation = _get_conversation_or_404(conversation_id, repository)
    document = conversation.state.document
    if document is None:
        raise HTTPException(status_code=404, detail="No proposal has been drafted yet")
    return DocumentResponse(
        conversation_id=conversation_id,
        document=document.model_dump(mode="json"),
    )


@router.post(
    "/conversations/{conversation_id}/approvals/{approval_id}",
    response_model=ApprovalDecisionResponse,
)
async def decide_approval(
    conversation_id: str,
    approval_id: str,
    request: ApprovalDecisionRequest,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> ApprovalDecisionResponse:
    """
    Record an approver's verdict for the conversation's active approval.

    Args:
        conversation_id: Conversation ID
        approval_id: Approval ID
        request: Approval decision

    Returns:
        Approval decision response
    """
    logger.info(f"APPROVAL DECISION for {approval_id}: {request.status}")
    if request.status.upper() not in ["APPROVED", "REJECTED"]:
        raise HTTPException(
            status_code=400,
            detail="Status must be APPROVED or REJECTED"
        )

    _get_conversation_or_404(conversation_id, repository)
    orchestrator = repository.orchestrator
    if orchestrator.approval_service.get_approval(approval_id) is None:
        raise HTTPException(status_code=404, detail="Approval not found")
    decision = ApprovalStatus(request.status.upper())

    try:
        record = orchestrator.resolve_approval(conversation_id, approval_id, decision)
    except InvalidApprovalTransition as e:
        raise HTTPException(status_code=400, detail=str(e))

    if record is None:
        raise HTTPException(
            status_code=409,
            detail=f"Approval {approval_id} is not the active pending request of this conversation",
        )

    return ApprovalDecisionResponse(
        status=decision.value.lower(),
        message=record.text,
    )


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    repository: ConversationRepository = Depends(get_conversation_repository),
) -> None:
    """End a conversation and cancel its scheduled events."""
    if not repository.delete_conversation(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
