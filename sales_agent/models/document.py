"""Render-agnostic proposal document models."""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class SectionKind(str, Enum):
    """Section kinds, in the order they appear in a proposal."""
    HEADER = "HEADER"
    EXECUTIVE_SUMMARY = "EXECUTIVE_SUMMARY"
    SOLUTION_OVERVIEW = "SOLUTION_OVERVIEW"
    PRICING = "PRICING"
    INTERNAL_NOTE = "INTERNAL_NOTE"
    TERMS = "TERMS"


class RowKind(str, Enum):
    """Pricing table row kinds."""
    LINE_ITEM = "LINE_ITEM"
    SUBTOTAL = "SUBTOTAL"
    DISCOUNT = "DISCOUNT"
    GRAND_TOTAL = "GRAND_TOTAL"


class PricingRow(BaseModel):
    """One row of the pricing table."""
    kind: RowKind = Field(..., description="Row kind")
    label: str = Field(..., description="Row label")
    quantity: Optional[int] = Field(None, description="Quantity for line items")
    unit_price: Optional[str] = Field(None, description="Formatted unit price for line items")
    amount: float = Field(..., description="Row amount; negative for discounts")
    formatted_amount: str = Field(..., description="Locale-formatted amount")

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class DocumentSection(BaseModel):
    """A plain data section of a proposal document."""
    kind: SectionKind = Field(..., description="Section kind")
    heading: str = Field(..., description="Section heading")
    paragraphs: List[str] = Field(default_factory=list, description="Body paragraphs")
    rows: List[PricingRow] = Field(default_factory=list, description="Pricing rows (PRICING only)")

    model_config = {"extra": "forbid", "strict": True, "frozen": True}


class ProposalDocument(BaseModel):
    """Structured proposal document, regenerated in full on every change."""
    title: str = Field(..., description="Document title")
    sections: List[DocumentSection] = Field(..., description="Ordered sections")
    discount_percent: int = Field(..., ge=0, description="Discount the document was generated with")
    grand_total: float = Field(..., description="Final total after discount")

    def section(self, kind: SectionKind) -> Optional[DocumentSection]:
        """Return the first section of the given kind, if present."""
        for section in self.sections:
            if section.kind == kind:
                return section
        return None

    @property
    def has_internal_note(self) -> bool:
        return self.section(SectionKind.INTERNAL_NOTE) is not None

    model_config = {"extra": "forbid", "strict": True, "frozen": True}
