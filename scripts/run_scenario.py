"""Script to replay the reference sales scenario on a virtual clock."""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sales_agent.config import settings
from sales_agent.conversations.orchestrator import TurnOrchestrator
from sales_agent.conversations.service import ConversationService
from sales_agent.models.document import ProposalDocument
from sales_agent.models.domain import TurnRecord
from sales_agent.scheduling.scheduler import VirtualScheduler

SCENARIO = [
    "Yes, create a draft proposal.",
    "Apply a 20% discount for them.",
    "Request approval from Sarah.",
]


def print_turn(record: TurnRecord):
    """Print one history entry with its reasoning and actions."""
    print(f"[{record.id}] {record.actor.value.upper()}: {record.text}")
    for step in record.reasoning_steps:
        print(f"    > {step}")
    for action in record.actions:
        print(f"    * {action.label} [{action.category.value}/{action.status.value}] {action.detail}")


def print_document(document: ProposalDocument):
    """Print the proposal document as plain text."""
    print(document.title)
    print("=" * len(document.title))
    for section in document.sections:
        print()
        print(section.heading)
        for paragraph in section.paragraphs:
            print(f"  {paragraph}")
        for row in section.rows:
            quantity = "" if row.quantity is None else f" x{row.quantity}"
            print(f"  {row.label}{quantity}: {row.formatted_amount}")


def run_scenario():
    """Run the three-utterance scenario and wait for the approver's verdict."""
    scheduler = VirtualScheduler()
    conversation = ConversationService(TurnOrchestrator(scheduler))
    printed = 0

    def flush():
        nonlocal printed
        history = conversation.state.history
        for record in history[printed:]:
            print_turn(record)
        printed = len(history)

    flush()
    for text in SCENARIO:
        conversation.submit_utterance(text)
        scheduler.advance(settings.composing_delay_seconds)
        flush()
        print(f"    (view: {conversation.state.current_view.value})")

    print("... waiting for the approver ...")
    scheduler.run_until_idle()
    flush()

    print()
    print_document(conversation.state.document)
    conversation.end()


if __name__ == "__main__":
    run_scenario()
