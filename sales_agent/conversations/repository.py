"""In-memory registry of live conversations."""
import logging
from typing import Dict, List, Optional
from sales_agent.conversations.orchestrator import TurnOrchestrator
from sales_agent.conversations.service import ConversationService
from sales_agent.scheduling.scheduler import Scheduler

logger = logging.getLogger(__name__)


class ConversationRepository:
    """Repository for conversations, kept for the lifetime of the process."""

    def __init__(
        self,
        scheduler: Scheduler,
        orchestrator: Optional[TurnOrchestrator] = None,
        composing_delay_seconds: Optional[float] = None,
    ):
        """
        Initialize conversation repository.

        Args:
            scheduler: Scheduler shared by every conversation
            orchestrator: Turn orchestrator; built from settings when omitted
            composing_delay_seconds: Delay before each agent reply
        """
        self.scheduler = scheduler
        self.orchestrator = orchestrator or TurnOrchestrator(scheduler)
        self.composing_delay_seconds = composing_delay_seconds
        self._conversations: Dict[str, ConversationService] = {}

    def create_conversation(self, conversation_id: Optional[str] = None) -> ConversationService:
        """
        Start a new conversation.

        Args:
            conversation_id: Optional identifier

        Returns:
            ConversationService
        """
        conversation = ConversationService(
            self.orchestrator,
            composing_delay_seconds=self.composing_delay_seconds,
            session_id=conversation_id,
        )
        self._conversations[conversation.session_id] = conversation
        logger.info(f"Conversation {conversation.session_id} created")
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[ConversationService]:
        return self._conversations.get(conversation_id)

    def list_conversations(self) -> List[ConversationService]:
        return list(self._conversations.values())

    def delete_conversation(self, conversation_id: str) -> bool:
        """
        End and remove a conversation.

        Args:
            conversation_id: Conversation ID

        Returns:
            True if deleted, False if not found
        """
        conversation = self._conversations.pop(conversation_id, None)
        if conversation is None:
            return False
        conversation.end()
        return True
