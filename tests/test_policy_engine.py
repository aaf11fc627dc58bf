import pytest

from sales_agent.policy.engine import PolicyEngine

from conftest import APPROVER


@pytest.mark.parametrize("percent", range(0, 101, 5))
def test_auto_approval_boundary(policy_engine, percent):
    verdict = policy_engine.evaluate(percent)
    assert verdict.auto_approved == (percent <= 15)
    assert verdict.threshold_percent == 15


def test_threshold_itself_is_auto_approved(policy_engine):
    assert policy_engine.evaluate(15).auto_approved
    assert not policy_engine.evaluate(16).auto_approved


def test_approver_is_named_only_on_escalation(policy_engine):
    assert policy_engine.evaluate(10).approver is None
    assert policy_engine.evaluate(20).approver == APPROVER


def test_requires_approval_mirrors_verdict(policy_engine):
    assert policy_engine.requires_approval(20)
    assert not policy_engine.requires_approval(0)


def test_custom_threshold():
    engine = PolicyEngine(threshold_percent=25, approver="Dana Park, CFO")
    assert engine.evaluate(20).auto_approved
    assert engine.evaluate(30).approver == "Dana Park, CFO"


def test_defaults_come_from_settings():
    engine = PolicyEngine()
    assert engine.threshold_percent == 15
    assert engine.approver == APPROVER
