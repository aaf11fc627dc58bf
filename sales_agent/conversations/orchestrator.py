"""Turn orchestration: the sole owner and mutator of session state."""
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple
from langsmith import traceable
from sales_agent.approvals.service import ApprovalService
from sales_agent.config import settings
from sales_agent.documents.generator import ProposalGenerator
from sales_agent.graph.graph import build_turn_graph
from sales_agent.graph.nodes import (
    approver_display_name,
    approver_first_name,
    approver_short_name,
)
from sales_agent.intents.classifier import IntentClassifier, KeywordIntentClassifier
from sales_agent.models.domain import (
    ActionCategory,
    ActionRecord,
    ActionStatus,
    Actor,
    ApprovalRequest,
    ApprovalStatus,
    ProposalParameters,
    SessionState,
    TurnRecord,
    Utterance,
    ViewTag,
)
from sales_agent.policy.engine import PolicyEngine
from sales_agent.scheduling.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState, TurnRecord], None]


class SessionNotFound(KeyError):
    """Raised when a session id is unknown or the session has ended."""


class StaleSessionError(ValueError):
    """Raised when a turn is processed against a superseded session version."""


class TurnOrchestrator:
    """
    Coordinates classification, policy, documents and approvals per turn.

    Session states are immutable versions; the orchestrator keeps the
    current version of every live session and replaces it atomically on
    each change. Approval verdicts and timeouts arrive later through the
    injected scheduler and are applied only if the approval they target
    is still the session's active, pending request.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        classifier: Optional[IntentClassifier] = None,
        policy_engine: Optional[PolicyEngine] = None,
        generator: Optional[ProposalGenerator] = None,
        approval_service: Optional[ApprovalService] = None,
        approval_delay_seconds: Optional[float] = None,
        approval_timeout_seconds: Optional[float] = None,
        simulated_outcome: Optional[ApprovalStatus] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            scheduler: Clock and delayed-event dispatcher
            classifier: Intent classifier
            policy_engine: Pricing policy engine
            generator: Proposal document generator
            approval_service: Approval workflow
            approval_delay_seconds: Delay before the simulated approver answers
            approval_timeout_seconds: Optional delay after which a pending request expires
            simulated_outcome: Verdict returned by the simulated approver
        """
        self.scheduler = scheduler
        self.classifier = classifier or KeywordIntentClassifier()
        self.policy_engine = policy_engine or PolicyEngine()
        self.generator = generator or ProposalGenerator(policy_engine=self.policy_engine)
        self.approval_service = approval_service or ApprovalService()
        self.approval_delay_seconds = (
            settings.approval_delay_seconds if approval_delay_seconds is None else approval_delay_seconds
        )
        self.approval_timeout_seconds = (
            settings.approval_timeout_seconds if approval_timeout_seconds is None else approval_timeout_seconds
        )
        self.simulated_outcome = simulated_outcome or ApprovalStatus(settings.simulated_approval_outcome.upper())

        self.graph = build_turn_graph(
            self.classifier,
            self.policy_engine,
            self.generator,
            self.approval_service,
        )

        self._sessions: Dict[str, SessionState] = {}
        self._timers: Dict[str, List[ScheduledTask]] = {}
        self._listeners: Dict[str, List[StateListener]] = {}
        self._approval_ids: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(self, session_id: Optional[str] = None) -> SessionState:
        """
        Create a session on the inbox view with the agent's opening offer.

        Args:
            session_id: Optional identifier; generated when omitted

        Returns:
            Initial SessionState
        """
        session_id = session_id or f"conv-{uuid.uuid4().hex[:8]}"
        if session_id in self._sessions:
            raise ValueError(f"Session {session_id} already exists")

        proposal = ProposalParameters(
            client_name=settings.client_name,
            base_total=float(settings.base_total),
        )
        greeting = TurnRecord(
            id=_turn_id(0),
            actor=Actor.AGENT,
            text=(
                f"Hi {settings.account_owner.split()[0]}. I noticed the email from {proposal.client_name} "
                "regarding the enterprise license renewal. Would you like me to prepare a proposal "
                "based on their usage data and our Q1 pricing?"
            ),
            reasoning_steps=[
                "Detected intent: Inbound sales inquiry",
                f"Identified entity: {proposal.client_name}",
                "Context: Email open",
            ],
        )
        state = SessionState(
            session_id=session_id,
            history=[greeting],
            proposal=proposal,
            current_view=ViewTag.EMAIL,
        )
        self._sessions[session_id] = state
        self._timers[session_id] = []
        self._listeners[session_id] = []
        self._approval_ids[session_id] = []
        logger.info(f"ORCHESTRATOR: session {session_id} started")
        return state

    def get_state(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            raise SessionNotFound(session_id)
        return state

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def end_session(self, session_id: str) -> None:
        """Discard a session together with its approval records and scheduled events."""
        if session_id not in self._sessions:
            raise SessionNotFound(session_id)

        cancelled = sum(1 for task in self._timers.pop(session_id, []) if task.cancel())
        del self._sessions[session_id]
        self._listeners.pop(session_id, None)
        for approval_id in self._approval_ids.pop(session_id, []):
            self.approval_service.discard(approval_id)
        logger.info(f"ORCHESTRATOR: session {session_id} ended, {cancelled} scheduled event(s) cancelled")

    def subscribe(self, session_id: str, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener called with (state, record) after every change.

        Returns:
            Callable that removes the listener
        """
        if session_id not in self._sessions:
            raise SessionNotFound(session_id)
        listeners = self._listeners[session_id]
        listeners.append(listener)

        def unsubscribe() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def record_utterance(self, state: SessionState, utterance: Utterance) -> Tuple[SessionState, TurnRecord]:
        """
        Append the utterance itself to the history.

        Args:
            state: Current session state
            utterance: Submitted utterance

        Returns:
            (new state, recorded turn)
        """
        self._check_current(state)
        record = TurnRecord(
            id=_turn_id(len(state.history)),
            actor=utterance.actor,
            text=utterance.text,
        )
        return self._commit(state, record), record

    @traceable(name="process_turn")
    def process_turn(self, state: SessionState, utterance: Utterance) -> Tuple[SessionState, TurnRecord]:
        """
        Process one utterance and produce the agent's turn.

        Args:
            state: Current session state
            utterance: Utterance to respond to

        Returns:
            (new state, agent turn record)

        Raises:
            SessionNotFound: If the session is unknown or ended
            StaleSessionError: If state is not the session's current version
        """
        self._check_current(state)
        logger.info(f"ORCHESTRATOR: processing turn for {state.session_id}: '{utterance.text}'")

        result = self.graph.invoke({
            "utterance": utterance.text,
            "session": state,
        })

        record = TurnRecord(
            id=_turn_id(len(state.history)),
            actor=Actor.AGENT,
            text=result["reply"],
            reasoning_steps=list(result.get("reasoning_steps") or []),
            actions=list(result.get("actions") or []),
        )
        new_state = self._commit(state, record, **(result.get("updates") or {}))

        approval_id = result.get("opened_approval_id")
        if approval_id:
            self._approval_ids[state.session_id].append(approval_id)
            self._schedule_approval_events(state.session_id, approval_id)

        return new_state, record

    # ------------------------------------------------------------------
    # Approval resolution
    # ------------------------------------------------------------------

    def resolve_approval(
        self,
        session_id: str,
        approval_id: str,
        status: ApprovalStatus,
    ) -> Optional[TurnRecord]:
        """
        Apply an approver's verdict to the session's active request.

        Args:
            session_id: Session the approval belongs to
            approval_id: Approval being answered
            status: APPROVED or REJECTED

        Returns:
            The narrated TurnRecord, or None when the approval is no longer
            the session's active pending request (the verdict is discarded)
        """
        if status not in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
            raise ValueError("Status must be APPROVED or REJECTED")

        state = self._active_pending(session_id, approval_id)
        if state is None:
            return None

        approval = self.approval_service.resolve(approval_id, status)
        if status == ApprovalStatus.APPROVED:
            record = self._narrate_approved(state, approval)
        else:
            record = self._narrate_rejected(state, approval)
        self._apply_resolution(state, approval, record)
        return record

    def expire_approval(self, session_id: str, approval_id: str) -> Optional[TurnRecord]:
        """Move a still-pending active request to EXPIRED."""
        state = self._active_pending(session_id, approval_id)
        if state is None:
            return None

        approval = self.approval_service.expire(approval_id)
        record = TurnRecord(
            id=_turn_id(len(state.history)),
            actor=Actor.AGENT,
            text=(
                f"The approval request to {approver_display_name(approval.approver)} expired without a "
                "response. Ask me to request approval again when you are ready."
            ),
            reasoning_steps=["Event: Approval Timeout"],
            actions=[
                ActionRecord(
                    label="Approval Expired",
                    category=ActionCategory.APPROVAL_PING,
                    status=ActionStatus.ERROR,
                    detail=f"No response from {approver_short_name(approval.approver)}",
                ),
            ],
        )
        self._apply_resolution(state, approval, record)
        return record

    def _deliver_simulated_verdict(self, session_id: str, approval_id: str) -> None:
        self.resolve_approval(session_id, approval_id, self.simulated_outcome)

    def _schedule_approval_events(self, session_id: str, approval_id: str) -> None:
        timers = self._timers[session_id]
        timers[:] = [task for task in timers if task.active]

        timers.append(self.scheduler.call_later(
            self.approval_delay_seconds,
            self._deliver_simulated_verdict,
            session_id,
            approval_id,
            name=f"approval-verdict:{approval_id}",
        ))
        if self.approval_timeout_seconds is not None:
            timers.append(self.scheduler.call_later(
                self.approval_timeout_seconds,
                self.expire_approval,
                session_id,
                approval_id,
                name=f"approval-timeout:{approval_id}",
            ))
        logger.info(f"ORCHESTRATOR: scheduled verdict for {approval_id} in {self.approval_delay_seconds}s")

    def _active_pending(self, session_id: str, approval_id: str) -> Optional[SessionState]:
        state = self._sessions.get(session_id)
        if state is None:
            logger.info(f"ORCHESTRATOR: discarding event for {approval_id}, session {session_id} has ended")
            return None

        active = state.active_approval
        if active is None or active.approval_id != approval_id:
            logger.info(f"ORCHESTRATOR: discarding event for {approval_id}, no longer the active request")
            return None
        if active.status != ApprovalStatus.PENDING:
            logger.info(f"ORCHESTRATOR: discarding event for {approval_id}, already {active.status.value}")
            return None
        return state

    def _apply_resolution(self, state: SessionState, approval: ApprovalRequest, record: TurnRecord) -> None:
        proposal = state.proposal.model_copy(update={"approval_status": approval.status})
        self._commit(
            state,
            record,
            proposal=proposal,
            document=self.generator.render(proposal),
            active_approval=approval,
            current_view=ViewTag.DRAFTING,
        )

    def _narrate_approved(self, state: SessionState, approval: ApprovalRequest) -> TurnRecord:
        return TurnRecord(
            id=_turn_id(len(state.history)),
            actor=Actor.AGENT,
            text=(
                f"Great news! {approver_first_name(approval.approver)} approved the "
                f"{approval.requested_percent}% discount. I've attached the approval record to the "
                "Salesforce opportunity and finalized the proposal PDF."
            ),
            reasoning_steps=[
                "Event: Approval Received (Teams)",
                "Action: Log Audit Trail to CRM",
                "Action: Finalize Document (Remove Watermark)",
            ],
            actions=[
                ActionRecord(
                    label="Approval Verified",
                    category=ActionCategory.APPROVAL_PING,
                    status=ActionStatus.SUCCESS,
                    detail=f"Approved by {approver_short_name(approval.approver)}",
                ),
                ActionRecord(
                    label="CRM Updated",
                    category=ActionCategory.CRM_LOOKUP,
                    status=ActionStatus.SUCCESS,
                    detail="Deal Stage: Negotiation",
                ),
            ],
        )

    def _narrate_rejected(self, state: SessionState, approval: ApprovalRequest) -> TurnRecord:
        threshold = self.policy_engine.threshold_percent
        return TurnRecord(
            id=_turn_id(len(state.history)),
            actor=Actor.AGENT,
            text=(
                f"{approver_first_name(approval.approver)} declined the {approval.requested_percent}% "
                f"discount. The draft stays internal; a discount of {threshold}% or less needs no approval."
            ),
            reasoning_steps=[
                "Event: Approval Received (Teams)",
                "Action: Log Audit Trail to CRM",
            ],
            actions=[
                ActionRecord(
                    label="Approval Declined",
                    category=ActionCategory.APPROVAL_PING,
                    status=ActionStatus.WARNING,
                    detail=f"Rejected by {approver_short_name(approval.approver)}",
                ),
                ActionRecord(
                    label="CRM Updated",
                    category=ActionCategory.CRM_LOOKUP,
                    status=ActionStatus.SUCCESS,
                    detail="Deal Stage: Negotiation",
                ),
            ],
        )

    # ------------------------------------------------------------------
    # State versioning
    # ------------------------------------------------------------------

    def _check_current(self, state: SessionState) -> None:
        current = self._sessions.get(state.session_id)
        if current is None:
            raise SessionNotFound(state.session_id)
        if current.version != state.version:
            raise StaleSessionError(
                f"Session {state.session_id} is at version {current.version}, got {state.version}"
            )

    def _commit(self, state: SessionState, record: TurnRecord, **updates: Any) -> SessionState:
        new_state = state.model_copy(update={
            **updates,
            "history": [*state.history, record],
            "version": state.version + 1,
        })
        self._sessions[state.session_id] = new_state
        logger.debug(
            f"ORCHESTRATOR: {state.session_id} v{new_state.version} "
            f"view={new_state.current_view.value} discount={new_state.proposal.discount_percent}% "
            f"approval={new_state.proposal.approval_status.value}"
        )

        for listener in list(self._listeners.get(state.session_id, [])):
            try:
                listener(new_state, record)
            except Exception:
                logger.error(f"ORCHESTRATOR: listener failed for {state.session_id}", exc_info=True)
        return new_state


def _turn_id(index: int) -> str:
    return f"turn-{index + 1:04d}"
