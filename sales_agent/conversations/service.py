"""Conversation service: the interface the presentation layer talks to."""
import logging
from collections import deque
from typing import Callable, Deque, List, Optional
from pydantic import BaseModel, Field
from sales_agent.config import settings
from sales_agent.conversations.orchestrator import TurnOrchestrator
from sales_agent.models.domain import Actor, SessionState, TurnRecord, Utterance
from sales_agent.scheduling.scheduler import ScheduledTask

logger = logging.getLogger(__name__)


class ConversationSnapshot(BaseModel):
    """Read model handed to subscribers."""
    state: SessionState = Field(..., description="Current session state")
    is_composing: bool = Field(..., description="Whether the agent is composing a reply")


SnapshotListener = Callable[[ConversationSnapshot], None]


class ConversationService:
    """
    One conversation with the sales agent.

    Utterances are recorded as soon as they are submitted. The agent's
    reply follows after a composing delay; utterances submitted while the
    agent is composing wait in a FIFO queue so that only one turn is in
    flight at a time.
    """

    def __init__(
        self,
        orchestrator: TurnOrchestrator,
        composing_delay_seconds: Optional[float] = None,
        session_id: Optional[str] = None,
    ):
        """
        Initialize the conversation and start its session.

        Args:
            orchestrator: Turn orchestrator owning the session state
            composing_delay_seconds: Delay before each agent reply
            session_id: Optional conversation identifier
        """
        self.orchestrator = orchestrator
        self.composing_delay_seconds = (
            settings.composing_delay_seconds if composing_delay_seconds is None else composing_delay_seconds
        )
        self.session_id = orchestrator.start_session(session_id).session_id
        self.ended = False

        self._queue: Deque[Utterance] = deque()
        self._composing_task: Optional[ScheduledTask] = None
        self._subscribers: List[SnapshotListener] = []
        self._unsubscribe = orchestrator.subscribe(self.session_id, self._on_state_change)

    @property
    def state(self) -> SessionState:
        return self.orchestrator.get_state(self.session_id)

    @property
    def is_composing(self) -> bool:
        return self._composing_task is not None and self._composing_task.active

    @property
    def queued(self) -> int:
        return len(self._queue)

    def snapshot(self) -> ConversationSnapshot:
        return ConversationSnapshot(state=self.state, is_composing=self.is_composing)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a listener called with a fresh snapshot after every change.

        Returns:
            Callable that removes the listener
        """
        self._subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    def submit_utterance(self, text: str) -> None:
        """
        Submit one user utterance. Blank text is ignored.

        The result is observed through subscribers or snapshot().
        """
        if self.ended:
            raise RuntimeError(f"Conversation {self.session_id} has ended")
        if not text.strip():
            logger.debug(f"CONVERSATION: ignoring blank utterance for {self.session_id}")
            return

        utterance = Utterance(text=text, actor=Actor.USER)
        self._queue.append(utterance)
        if not self.is_composing:
            self._start_composing()
        self.orchestrator.record_utterance(self.state, utterance)

    def end(self) -> None:
        """End the conversation, cancelling the pending reply and approval events."""
        if self.ended:
            return
        self.ended = True
        if self._composing_task is not None:
            self._composing_task.cancel()
        self._queue.clear()
        self._unsubscribe()
        self.orchestrator.end_session(self.session_id)
        self._subscribers.clear()
        logger.info(f"CONVERSATION: {self.session_id} ended")

    def _start_composing(self) -> None:
        self._composing_task = self.orchestrator.scheduler.call_later(
            self.composing_delay_seconds,
            self._complete_turn,
            name=f"composing:{self.session_id}",
        )

    def _complete_turn(self) -> None:
        utterance = self._queue.popleft()
        # The next reply is armed before this turn commits
        if self._queue:
            self._start_composing()
        self.orchestrator.process_turn(self.state, utterance)

    def _on_state_change(self, state: SessionState, record: TurnRecord) -> None:
        self._notify(state)

    def _notify(self, state: Optional[SessionState] = None) -> None:
        snapshot = ConversationSnapshot(state=state or self.state, is_composing=self.is_composing)
        for listener in list(self._subscribers):
            try:
                listener(snapshot)
            except Exception:
                logger.error(f"CONVERSATION: subscriber failed for {self.session_id}", exc_info=True)
