"""
Unit tests for pricing, document numbering, slugs and the rate limit key
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker
from starlette.requests import Request

from app.database import TenantBase, build_engine
from app.services.pricing import (
    calculate_line, calculate_document_totals, calculate_sale_price, normalize_discount_update
)
from app.services.sequence import (
    next_document_number, QUOTE_SEQUENCE, SALES_ORDER_SEQUENCE, EXPENSE_CLAIM_SEQUENCE
)
from app.utils.rate_limiter import client_address
from app.utils.slug import slugify


# ============================================================================
# Pricing
# ============================================================================

def test_line_with_percentage_discount_and_tax():
    line = calculate_line(quantity=3, unit_price="19.99", discount_percentage=10, tax_rate=23)
    # 59.97 gross, 5.997 discount
    assert line["line_total"] == Decimal("53.97")
    assert line["discount_amount"] == Decimal("6.00")
    assert line["tax_amount"] == Decimal("12.41")


def test_line_falls_back_to_absolute_amounts():
    line = calculate_line(quantity=2, unit_price=50, discount_amount=5, tax_amount="4.50")
    assert line["line_total"] == Decimal("95.00")
    assert line["discount_amount"] == Decimal("5.00")
    assert line["tax_amount"] == Decimal("4.50")


def test_document_totals():
    lines = [
        calculate_line(2, 100, tax_rate=23),
        calculate_line(1, 50, tax_rate=6),
    ]
    totals = calculate_document_totals(lines, discount_percentage=10, shipping_cost="7.5")
    assert totals["subtotal"] == Decimal("250.00")
    assert totals["discount_amount"] == Decimal("25.00")
    assert totals["tax_amount"] == Decimal("49.00")
    assert totals["shipping_cost"] == Decimal("7.50")
    assert totals["total_amount"] == Decimal("281.50")


def test_percentage_and_fixed_discount_agree():
    lines = [{"line_total": Decimal("1000"), "tax_amount": Decimal("100")}]
    by_percentage = calculate_document_totals(lines, discount_percentage=10)
    by_amount = calculate_document_totals(lines, discount_amount=100)

    assert by_percentage["discount_amount"] == Decimal("100.00")
    assert by_percentage["total_amount"] == Decimal("1000.00")
    assert by_percentage == by_amount


def test_fixed_discount_replaces_percentage():
    assert normalize_discount_update({"discount_amount": 50}) == {
        "discount_amount": Decimal("50.00"),
        "discount_percentage": None,
    }
    assert normalize_discount_update({"discount_percentage": None}) == {
        "discount_percentage": None,
        "discount_amount": Decimal("0.00"),
    }
    assert normalize_discount_update({"discount_percentage": 15, "discount_amount": 5})["discount_percentage"] == 15
    assert normalize_discount_update({"title": "Renamed"}) == {"title": "Renamed"}


def test_document_totals_for_empty_document():
    totals = calculate_document_totals([], discount_amount=None)
    assert totals["subtotal"] == Decimal("0.00")
    assert totals["total_amount"] == Decimal("0.00")


def test_sale_price_from_margin():
    result = calculate_sale_price(cost_price=60, profit_margin=40, vat_rate=23)
    assert result["salePriceBeforeVAT"] == 100.0
    assert result["salePriceWithVAT"] == 123.0
    assert result["profit"] == 40.0
    assert result["vatAmount"] == 23.0


def test_sale_price_rejects_full_margin():
    assert calculate_sale_price(cost_price=60, profit_margin=100, vat_rate=23) is None


# ============================================================================
# Document numbering
# ============================================================================

@pytest.fixture
def tenant_session():
    engine = build_engine("sqlite://")
    TenantBase.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def test_numbers_are_sequential_per_sequence(tenant_session):
    on = date(2025, 3, 14)
    assert next_document_number(tenant_session, QUOTE_SEQUENCE, on) == "QUO-2025-000001"
    assert next_document_number(tenant_session, QUOTE_SEQUENCE, on) == "QUO-2025-000002"
    assert next_document_number(tenant_session, SALES_ORDER_SEQUENCE, on) == "SO-2025-000001"
    assert next_document_number(tenant_session, EXPENSE_CLAIM_SEQUENCE, on) == "EXP-2025-000001"


def test_numbering_restarts_each_year(tenant_session):
    next_document_number(tenant_session, QUOTE_SEQUENCE, date(2024, 12, 31))
    next_document_number(tenant_session, QUOTE_SEQUENCE, date(2024, 12, 31))
    assert next_document_number(tenant_session, QUOTE_SEQUENCE, date(2025, 1, 1)) == "QUO-2025-000001"


def test_rolled_back_number_is_reissued(tenant_session):
    on = date(2025, 6, 1)
    next_document_number(tenant_session, QUOTE_SEQUENCE, on)
    tenant_session.commit()

    next_document_number(tenant_session, QUOTE_SEQUENCE, on)
    tenant_session.rollback()

    assert next_document_number(tenant_session, QUOTE_SEQUENCE, on) == "QUO-2025-000002"


# ============================================================================
# Slugs
# ============================================================================

@pytest.mark.parametrize("text, expected", [
    ("Olá Mundo!", "ola-mundo"),
    ("  Release Notes: v2.0  ", "release-notes-v2-0"),
    ("Ação & Reação", "acao-reacao"),
    ("---", ""),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


# ============================================================================
# Rate limit key
# ============================================================================

def make_request(headers: dict) -> Request:
    return Request({
        "type": "http",
        "method": "POST",
        "path": "/api/auth/login",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": ("10.0.0.9", 52000),
    })


def test_client_address_prefers_proxy_headers():
    assert client_address(make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})) == "203.0.113.7"
    assert client_address(make_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"
    assert client_address(make_request({})) == "10.0.0.9"
