import pytest

from sales_agent.conversations.repository import ConversationRepository
from sales_agent.conversations.service import ConversationService
from sales_agent.intents.classifier import KeywordIntentClassifier
from sales_agent.models.domain import Actor, ApprovalStatus, ViewTag

from conftest import APPROVAL_DELAY, SCENARIO

COMPOSING_DELAY = 1.5


@pytest.fixture
def conversation(orchestrator):
    return ConversationService(orchestrator, composing_delay_seconds=COMPOSING_DELAY, session_id="conv-ui")


def test_starts_with_greeting(conversation):
    snapshot = conversation.snapshot()
    assert snapshot.state.session_id == "conv-ui"
    assert len(snapshot.state.history) == 1
    assert snapshot.state.current_view == ViewTag.EMAIL
    assert not snapshot.is_composing


def test_user_turn_is_recorded_before_the_reply(conversation, scheduler):
    conversation.submit_utterance(SCENARIO[0])

    assert conversation.is_composing
    assert conversation.state.history[-1].actor == Actor.USER
    assert conversation.state.history[-1].text == SCENARIO[0]

    scheduler.advance(COMPOSING_DELAY - 0.5)
    assert conversation.is_composing
    assert len(conversation.state.history) == 2

    scheduler.advance(0.5)
    assert not conversation.is_composing
    assert conversation.state.history[-1].actor == Actor.AGENT
    assert conversation.state.current_view == ViewTag.DRAFTING


def test_utterances_are_processed_one_at_a_time(conversation, scheduler):
    conversation.submit_utterance(SCENARIO[0])
    conversation.submit_utterance(SCENARIO[1])
    assert conversation.queued == 2

    scheduler.advance(COMPOSING_DELAY)
    assert conversation.queued == 1
    assert conversation.is_composing
    assert conversation.state.proposal.discount_percent == 0

    scheduler.advance(COMPOSING_DELAY)
    assert conversation.queued == 0
    assert not conversation.is_composing
    assert conversation.state.proposal.discount_percent == 20

    actors = [record.actor for record in conversation.state.history]
    assert actors == [Actor.AGENT, Actor.USER, Actor.USER, Actor.AGENT, Actor.AGENT]


def test_full_scenario_through_the_service(conversation, scheduler):
    for text in SCENARIO:
        conversation.submit_utterance(text)
        scheduler.advance(COMPOSING_DELAY)
    assert conversation.state.current_view == ViewTag.APPROVAL

    scheduler.advance(APPROVAL_DELAY)
    state = conversation.state
    assert state.active_approval.status == ApprovalStatus.APPROVED
    assert state.current_view == ViewTag.DRAFTING
    assert not state.document.has_internal_note


def test_blank_utterances_are_ignored(conversation, scheduler):
    conversation.submit_utterance("   ")
    conversation.submit_utterance("")
    assert not conversation.is_composing
    assert len(conversation.state.history) == 1
    assert scheduler.pending == []


def test_subscribers_receive_snapshots(conversation, scheduler):
    snapshots = []
    unsubscribe = conversation.subscribe(snapshots.append)
    conversation.subscribe(lambda snapshot: 1 / 0)

    conversation.submit_utterance(SCENARIO[0])
    scheduler.advance(COMPOSING_DELAY)

    assert [s.is_composing for s in snapshots] == [True, False]
    assert [len(s.state.history) for s in snapshots] == [2, 3]

    unsubscribe()
    conversation.submit_utterance(SCENARIO[1])
    assert len(snapshots) == 2


def test_end_cancels_pending_work(conversation, scheduler, orchestrator):
    for text in SCENARIO:
        conversation.submit_utterance(text)
        scheduler.advance(COMPOSING_DELAY)
    conversation.submit_utterance("What's the weather like?")
    assert scheduler.pending

    conversation.end()
    assert scheduler.pending == []
    assert not orchestrator.has_session("conv-ui")
    assert scheduler.run_until_idle() == 0

    conversation.end()
    with pytest.raises(RuntimeError):
        conversation.submit_utterance("hello")


def test_repository_tracks_conversations(orchestrator, scheduler):
    repository = ConversationRepository(scheduler, orchestrator=orchestrator, composing_delay_seconds=COMPOSING_DELAY)
    first = repository.create_conversation("conv-1")
    second = repository.create_conversation()

    assert repository.get_conversation("conv-1") is first
    assert repository.list_conversations() == [first, second]
    with pytest.raises(ValueError):
        repository.create_conversation("conv-1")

    assert repository.delete_conversation("conv-1")
    assert first.ended
    assert repository.get_conversation("conv-1") is None
    assert not repository.delete_conversation("conv-1")


def test_failed_turn_does_not_strand_the_queue(make_orchestrator, scheduler):
    class FailingClassifier(KeywordIntentClassifier):
        def classify(self, utterance):
            if "crash" in utterance.text:
                raise RuntimeError("classifier unavailable")
            return super().classify(utterance)

    orchestrator = make_orchestrator(
        classifier=FailingClassifier(default_discount_percent=20, approver_tokens=("Sarah",))
    )
    conversation = ConversationService(orchestrator, composing_delay_seconds=COMPOSING_DELAY)
    conversation.submit_utterance("crash please")
    conversation.submit_utterance(SCENARIO[0])

    with pytest.raises(RuntimeError):
        scheduler.advance(COMPOSING_DELAY)
    assert conversation.is_composing
    assert conversation.queued == 1

    scheduler.advance(COMPOSING_DELAY)
    assert not conversation.is_composing
    assert conversation.queued == 0
    assert conversation.state.current_view == ViewTag.DRAFTING
    assert [r.actor for r in conversation.state.history] == [Actor.AGENT, Actor.USER, Actor.USER, Actor.AGENT]


def test_composing_flag_stays_on_between_queued_replies(conversation, scheduler):
    snapshots = []
    conversation.submit_utterance(SCENARIO[0])
    conversation.submit_utterance(SCENARIO[1])
    conversation.subscribe(snapshots.append)

    scheduler.advance(COMPOSING_DELAY)
    scheduler.advance(COMPOSING_DELAY)

    assert [s.is_composing for s in snapshots] == [True, False]
    assert [s.state.history[-1].actor for s in snapshots] == [Actor.AGENT, Actor.AGENT]
