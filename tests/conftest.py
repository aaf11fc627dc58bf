import pytest

from sales_agent.approvals.service import ApprovalService
from sales_agent.conversations.orchestrator import TurnOrchestrator
from sales_agent.documents.generator import ProposalGenerator
from sales_agent.intents.classifier import KeywordIntentClassifier
from sales_agent.models.domain import ApprovalStatus, ProposalParameters
from sales_agent.policy.engine import PolicyEngine
from sales_agent.scheduling.scheduler import VirtualScheduler

APPROVER = "Sarah Jenkins, VP Sales"
APPROVAL_DELAY = 5.0

SCENARIO = [
    "Yes, create a draft proposal.",
    "Apply a 20% discount for them.",
    "Request approval from Sarah.",
]


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def policy_engine():
    return PolicyEngine(threshold_percent=15, approver=APPROVER)


@pytest.fixture
def classifier():
    return KeywordIntentClassifier(default_discount_percent=20, approver_tokens=("Sarah",))


@pytest.fixture
def generator(policy_engine):
    return ProposalGenerator(policy_engine=policy_engine, prepared_by="Alex Doe")


@pytest.fixture
def approval_service():
    return ApprovalService()


@pytest.fixture
def make_orchestrator(scheduler, classifier, policy_engine, generator, approval_service):
    def factory(**overrides):
        options = {
            "classifier": classifier,
            "policy_engine": policy_engine,
            "generator": generator,
            "approval_service": approval_service,
            "approval_delay_seconds": APPROVAL_DELAY,
            "simulated_outcome": ApprovalStatus.APPROVED,
        }
        options.update(overrides)
        return TurnOrchestrator(scheduler, **options)
    return factory


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()


@pytest.fixture
def proposal():
    return ProposalParameters(client_name="Acme Corp", base_total=150000.0)
