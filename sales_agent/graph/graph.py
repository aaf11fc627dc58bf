"""LangGraph turn graph construction."""
import logging
from typing import Literal
from langgraph.graph import StateGraph, END
from langsmith import traceable
from sales_agent.approvals.service import ApprovalService
from sales_agent.documents.generator import ProposalGenerator
from sales_agent.graph.state import TurnState
from sales_agent.graph.nodes import (
    classify_intent,
    create_proposal,
    apply_discount,
    request_approval,
    fallback,
)
from sales_agent.intents.classifier import IntentClassifier
from sales_agent.models.domain import IntentType
from sales_agent.policy.engine import PolicyEngine

logger = logging.getLogger(__name__)


def route_intent(state: TurnState) -> Literal["create_proposal", "apply_discount", "request_approval", "fallback"]:
    """Conditional routing: which handler serves the classified intent?"""
    next_step = state.get("next_step", IntentType.UNKNOWN.value)
    logger.debug(f"ROUTING: route_intent - next_step: {next_step}")

    if next_step == IntentType.CREATE_PROPOSAL.value:
        logger.info("ROUTING: -> create_proposal")
        return "create_proposal"
    elif next_step == IntentType.APPLY_DISCOUNT.value:
        logger.info("ROUTING: -> apply_discount")
        return "apply_discount"
    elif next_step == IntentType.REQUEST_APPROVAL.value:
        logger.info("ROUTING: -> request_approval")
        return "request_approval"

    logger.info("ROUTING: -> fallback")
    return "fallback"


@traceable(name="build_turn_graph")
def build_turn_graph(
    classifier: IntentClassifier,
    policy_engine: PolicyEngine,
    generator: ProposalGenerator,
    approval_service: ApprovalService,
):
    """
    Build the turn graph.

    Args:
        classifier: Intent classifier
        policy_engine: Pricing policy engine
        generator: Proposal document generator
        approval_service: Approval service instance

    Returns:
        Compiled graph
    """
    logger.info("Building turn graph...")
    workflow = StateGraph(TurnState)

    def classify_intent_node(state: TurnState):
        return classify_intent(state, classifier)

    def create_proposal_node(state: TurnState):
        return create_proposal(state, generator, approval_service)

    def apply_discount_node(state: TurnState):
        return apply_discount(state, policy_engine, generator, approval_service)

    def request_approval_node(state: TurnState):
        return request_approval(state, policy_engine, generator, approval_service)

    workflow.add_node("classify_intent", classify_intent_node)
    workflow.add_node("create_proposal", create_proposal_node)
    workflow.add_node("apply_discount", apply_discount_node)
    workflow.add_node("request_approval", request_approval_node)
    workflow.add_node("fallback", fallback)

    workflow.set_entry_point("classify_intent")

    workflow.add_conditional_edges(
        "classify_intent",
        route_intent,
        {
            "create_proposal": "create_proposal",
            "apply_discount": "apply_discount",
            "request_approval": "request_approval",
            "fallback": "fallback",
        }
    )

    for handler in ("create_proposal", "apply_discount", "request_approval", "fallback"):
        workflow.add_edge(handler, END)

    app = workflow.compile()
    logger.info("Turn graph built successfully")
    return app
