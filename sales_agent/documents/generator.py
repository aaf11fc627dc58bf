"""Proposal document generation."""
from datetime import date
from typing import List, Optional
from langsmith import traceable
from sales_agent.config import settings
from sales_agent.models.document import (
    DocumentSection,
    PricingRow,
    ProposalDocument,
    RowKind,
    SectionKind,
)
from sales_agent.models.domain import ProposalParameters
from sales_agent.policy.engine import PolicyEngine

DEFAULT_ISSUE_DATE = date(2026, 1, 15)

LICENSE_QUANTITY = 500
SUPPORT_QUANTITY = 1


def format_currency(amount: float, symbol: Optional[str] = None) -> str:
    """Format an amount with thousands separators, e.g. 120000 -> '$120,000'."""
    if symbol is None:
        symbol = settings.currency_symbol
    sign = "-" if amount < 0 else ""
    value = abs(amount)
    if value == int(value):
        return f"{sign}{symbol}{int(value):,}"
    return f"{sign}{symbol}{value:,.2f}"


class ProposalGenerator:
    """Maps proposal parameters to a structured proposal document."""

    def __init__(
        self,
        policy_engine: Optional[PolicyEngine] = None,
        vendor_name: str = "Northstar Enterprises",
        prepared_by: Optional[str] = None,
        issued_on: date = DEFAULT_ISSUE_DATE,
    ):
        """
        Initialize proposal generator.

        Args:
            policy_engine: Policy engine deciding whether a discount is internally gated
            vendor_name: Name of the selling company
            prepared_by: Account owner signing the proposal
            issued_on: Date printed in the header
        """
        self.policy_engine = policy_engine or PolicyEngine()
        self.vendor_name = vendor_name
        self.prepared_by = prepared_by or settings.account_owner
        self.issued_on = issued_on

    @traceable(name="render_proposal")
    def render(self, parameters: ProposalParameters) -> ProposalDocument:
        """
        Render a full proposal document.

        Args:
            parameters: Current proposal parameters

        Returns:
            ProposalDocument; equal inputs always yield equal documents
        """
        base_total = parameters.base_total
        final_total = base_total * (100 - parameters.discount_percent) / 100

        sections = [
            self._header(parameters),
            DocumentSection(
                kind=SectionKind.EXECUTIVE_SUMMARY,
                heading="EXECUTIVE SUMMARY",
                paragraphs=[
                    f"{self.vendor_name} is pleased to present this proposal to {parameters.client_name} "
                    "for the renewal and expansion of your Enterprise Productivity Suite."
                ],
            ),
            DocumentSection(
                kind=SectionKind.SOLUTION_OVERVIEW,
                heading="SOLUTION OVERVIEW",
                paragraphs=[
                    "Based on your usage of the 'Alpha' tier, we recommend upgrading to the "
                    "'Enterprise' tier to unlock advanced AI agents."
                ],
            ),
            DocumentSection(
                kind=SectionKind.PRICING,
                heading="PRICING",
                rows=self._pricing_rows(parameters, final_total),
            ),
        ]

        # Internal drafts must never carry the note once the discount is approved
        if (
            self.policy_engine.requires_approval(parameters.discount_percent)
            and not parameters.discount_approved
        ):
            sections.append(self._internal_note())

        sections.append(
            DocumentSection(
                kind=SectionKind.TERMS,
                heading="TERMS",
                paragraphs=["Valid for 30 days. Standard MSA applies."],
            )
        )

        return ProposalDocument(
            title=f"PROPOSAL FOR {parameters.client_name.upper()}",
            sections=sections,
            discount_percent=parameters.discount_percent,
            grand_total=float(final_total),
        )

    def _header(self, parameters: ProposalParameters) -> DocumentSection:
        issued = f"{self.issued_on:%B} {self.issued_on.day}, {self.issued_on.year}"
        return DocumentSection(
            kind=SectionKind.HEADER,
            heading=f"PROPOSAL FOR {parameters.client_name.upper()}",
            paragraphs=[
                f"Date: {issued}",
                f"Prepared by: {self.prepared_by} ({self.vendor_name})",
            ],
        )

    def _pricing_rows(self, parameters: ProposalParameters, final_total: float) -> List[PricingRow]:
        base_total = float(parameters.base_total)
        unit_price = base_total / LICENSE_QUANTITY

        rows = [
            PricingRow(
                kind=RowKind.LINE_ITEM,
                label="Enterprise License",
                quantity=LICENSE_QUANTITY,
                unit_price=format_currency(unit_price),
                amount=base_total,
                formatted_amount=format_currency(base_total),
            ),
            PricingRow(
                kind=RowKind.LINE_ITEM,
                label="Premium Support",
                quantity=SUPPORT_QUANTITY,
                unit_price="Included",
                amount=0.0,
                formatted_amount=format_currency(0.0),
            ),
            PricingRow(
                kind=RowKind.SUBTOTAL,
                label="Subtotal",
                amount=base_total,
                formatted_amount=format_currency(base_total),
            ),
        ]

        if parameters.discount_percent > 0:
            discount_amount = float(final_total - base_total)
            rows.append(
                PricingRow(
                    kind=RowKind.DISCOUNT,
                    label=f"Discount ({parameters.discount_percent}%)",
                    amount=discount_amount,
                    formatted_amount=format_currency(discount_amount),
                )
            )

        rows.append(
            PricingRow(
                kind=RowKind.GRAND_TOTAL,
                label="Grand Total",
                amount=float(final_total),
                formatted_amount=format_currency(final_total),
            )
        )
        return rows

    def _internal_note(self) -> DocumentSection:
        threshold = self.policy_engine.threshold_percent
        return DocumentSection(
            kind=SectionKind.INTERNAL_NOTE,
            heading="INTERNAL NOTE: PENDING APPROVAL",
            paragraphs=[
                f"This draft contains a discount exceeding {threshold}%. "
                "Do not share externally until approved."
            ],
        )
