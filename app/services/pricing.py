"""
Server-side totals for quotes and sales orders.

Aggregate amounts sent by clients are never trusted: every create/update
rebuilds them from the submitted line items.

    line gross     = quantity * unit_price
    line discount  = gross * discount_percentage / 100, else discount_amount
    line total     = gross - line discount
    line tax       = line total * tax_rate / 100, else tax_amount

    subtotal       = sum(line total)
    discount       = subtotal * discount_percentage / 100, else discount_amount
    tax            = sum(line tax)
    total          = subtotal - discount + tax (+ shipping for orders)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal(100)


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_line(
    quantity,
    unit_price,
    discount_percentage=None,
    discount_amount=None,
    tax_rate=None,
    tax_amount=None,
) -> dict:
    """Compute discount, tax and total for a single line item"""
    gross = to_decimal(quantity) * to_decimal(unit_price)

    if discount_percentage:
        line_discount = gross * to_decimal(discount_percentage) / HUNDRED
    else:
        line_discount = to_decimal(discount_amount)

    line_total = money(gross - line_discount)

    if tax_rate:
        line_tax = line_total * to_decimal(tax_rate) / HUNDRED
    else:
        line_tax = to_decimal(tax_amount)

    return {
        "discount_amount": money(line_discount),
        "tax_amount": money(line_tax),
        "line_total": line_total,
    }


def calculate_document_totals(
    lines: List[dict],
    discount_percentage=None,
    discount_amount=None,
    shipping_cost=None,
) -> dict:
    """Aggregate already-calculated lines into document totals"""
    subtotal = money(sum((to_decimal(line["line_total"]) for line in lines), Decimal(0)))
    tax = money(sum((to_decimal(line["tax_amount"]) for line in lines), Decimal(0)))

    if discount_percentage:
        discount = money(subtotal * to_decimal(discount_percentage) / HUNDRED)
    else:
        discount = money(discount_amount)

    shipping = money(shipping_cost)

    return {
        "subtotal": subtotal,
        "discount_amount": discount,
        "tax_amount": tax,
        "shipping_cost": shipping,
        "total_amount": money(subtotal - discount + tax + shipping),
    }


def build_line_items(item_model, items_data: list, **parent_fields) -> list:
    """
    Instantiate ORM line items (QuoteItem, SalesOrderItem) numbered 1..n with
    their amounts recomputed.
    """
    lines = []
    for index, item in enumerate(items_data, start=1):
        data = item if isinstance(item, dict) else item.model_dump()
        amounts = calculate_line(
            data["quantity"],
            data["unit_price"],
            data.get("discount_percentage"),
            data.get("discount_amount"),
            data.get("tax_rate"),
            data.get("tax_amount"),
        )
        lines.append(item_model(
            line_number=index,
            product_id=data.get("product_id"),
            description=data["description"],
            quantity=to_decimal(data["quantity"]),
            unit_price=money(data["unit_price"]),
            discount_percentage=to_decimal(data["discount_percentage"]) if data.get("discount_percentage") is not None else None,
            discount_amount=amounts["discount_amount"],
            tax_rate=to_decimal(data["tax_rate"]) if data.get("tax_rate") is not None else None,
            tax_amount=amounts["tax_amount"],
            line_total=amounts["line_total"],
            notes=data.get("notes"),
            **parent_fields
        ))
    return lines


def normalize_discount_update(update_data: dict) -> dict:
    """
    A document discount is either a percentage or a fixed amount, and the
    stored amount is recomputed whenever a percentage is set. Supplying an
    amount switches to a fixed discount; clearing the percentage without an
    amount removes the discount.
    """
    if "discount_amount" in update_data:
        update_data.setdefault("discount_percentage", None)
        update_data["discount_amount"] = money(update_data["discount_amount"])
    elif "discount_percentage" in update_data and update_data["discount_percentage"] is None:
        update_data["discount_amount"] = money(0)
    return update_data


def apply_totals(document, lines: list, shipping: bool = False):
    """Recompute and store totals on a quote or sales order from its ORM lines"""
    totals = calculate_document_totals(
        [{"line_total": line.line_total, "tax_amount": line.tax_amount} for line in lines],
        discount_percentage=document.discount_percentage,
        discount_amount=document.discount_amount,
        shipping_cost=document.shipping_cost if shipping else None,
    )
    document.subtotal = totals["subtotal"]
    document.discount_amount = totals["discount_amount"]
    document.tax_amount = totals["tax_amount"]
    document.total_amount = totals["total_amount"]
    return totals


def copy_line_items(item_model, source_items: list, **parent_fields) -> list:
    """Copy lines (e.g. when cloning or converting) keeping their stored amounts"""
    return [
        item_model(
            line_number=item.line_number,
            product_id=item.product_id,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            discount_percentage=item.discount_percentage,
            discount_amount=item.discount_amount,
            tax_rate=item.tax_rate,
            tax_amount=item.tax_amount,
            line_total=item.line_total,
            notes=item.notes,
            **parent_fields
        )
        for item in source_items
    ]


def calculate_sale_price(cost_price, profit_margin, vat_rate) -> Optional[dict]:
    """
    Sale price from cost and margin on the sale price:
    price = cost / (1 - margin / 100). Returns None when margin >= 100.
    """
    cost = to_decimal(cost_price)
    margin = to_decimal(profit_margin)
    vat = to_decimal(vat_rate)
    if margin >= HUNDRED:
        return None

    before_vat = cost / (1 - margin / HUNDRED)
    with_vat = before_vat * (1 + vat / HUNDRED)
    return {
        "costPrice": float(money(cost)),
        "profitMargin": float(margin),
        "vatRate": float(vat),
        "salePriceBeforeVAT": float(money(before_vat)),
        "salePriceWithVAT": float(money(with_vat)),
        "profit": float(money(before_vat - cost)),
        "vatAmount": float(money(with_vat - before_vat)),
    }
