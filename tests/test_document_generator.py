import pytest

from sales_agent.documents.generator import format_currency
from sales_agent.models.document import RowKind, SectionKind
from sales_agent.models.domain import ApprovalStatus


def with_discount(proposal, percent, status=ApprovalStatus.NONE):
    return proposal.model_copy(update={"discount_percent": percent, "approval_status": status})


def row_kinds(document):
    return [row.kind for row in document.section(SectionKind.PRICING).rows]


@pytest.mark.parametrize(
    "amount, expected",
    [
        (150000, "$150,000"),
        (120000.0, "$120,000"),
        (-30000.0, "-$30,000"),
        (0.0, "$0"),
        (1234.5, "$1,234.50"),
    ],
)
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected


def test_render_is_pure(generator, proposal):
    params = with_discount(proposal, 20)
    assert generator.render(params) == generator.render(params)


def test_grand_total_applies_discount(generator, proposal):
    document = generator.render(with_discount(proposal, 20))
    assert document.grand_total == 120000.0
    assert document.discount_percent == 20

    grand_total = document.section(SectionKind.PRICING).rows[-1]
    assert grand_total.kind == RowKind.GRAND_TOTAL
    assert grand_total.formatted_amount == "$120,000"


def test_discount_row_only_when_discounted(generator, proposal):
    assert RowKind.DISCOUNT not in row_kinds(generator.render(proposal))

    document = generator.render(with_discount(proposal, 10))
    assert row_kinds(document) == [
        RowKind.LINE_ITEM,
        RowKind.LINE_ITEM,
        RowKind.SUBTOTAL,
        RowKind.DISCOUNT,
        RowKind.GRAND_TOTAL,
    ]
    discount = document.section(SectionKind.PRICING).rows[3]
    assert discount.label == "Discount (10%)"
    assert discount.formatted_amount == "-$15,000"


def test_line_items(generator, proposal):
    rows = generator.render(proposal).section(SectionKind.PRICING).rows
    license_row, support_row = rows[0], rows[1]
    assert license_row.label == "Enterprise License"
    assert license_row.quantity == 500
    assert license_row.unit_price == "$300"
    assert license_row.formatted_amount == "$150,000"
    assert support_row.unit_price == "Included"
    assert support_row.amount == 0.0


@pytest.mark.parametrize(
    "percent, status, has_note",
    [
        (0, ApprovalStatus.NONE, False),
        (15, ApprovalStatus.NONE, False),
        (16, ApprovalStatus.NONE, True),
        (20, ApprovalStatus.PENDING, True),
        (20, ApprovalStatus.REJECTED, True),
        (20, ApprovalStatus.EXPIRED, True),
        (20, ApprovalStatus.APPROVED, False),
    ],
)
def test_internal_note_gate(generator, proposal, percent, status, has_note):
    document = generator.render(with_discount(proposal, percent, status))
    assert document.has_internal_note == has_note


def test_internal_note_names_threshold(generator, proposal):
    note = generator.render(with_discount(proposal, 20)).section(SectionKind.INTERNAL_NOTE)
    assert note.heading == "INTERNAL NOTE: PENDING APPROVAL"
    assert "exceeding 15%" in note.paragraphs[0]


def test_section_order(generator, proposal):
    document = generator.render(with_discount(proposal, 20))
    assert [section.kind for section in document.sections] == [
        SectionKind.HEADER,
        SectionKind.EXECUTIVE_SUMMARY,
        SectionKind.SOLUTION_OVERVIEW,
        SectionKind.PRICING,
        SectionKind.INTERNAL_NOTE,
        SectionKind.TERMS,
    ]


def test_header_addresses_client(generator, proposal):
    document = generator.render(proposal)
    assert document.title == "PROPOSAL FOR ACME CORP"
    header = document.section(SectionKind.HEADER)
    assert header.paragraphs == [
        "Date: January 15, 2026",
        "Prepared by: Alex Doe (Northstar Enterprises)",
    ]
