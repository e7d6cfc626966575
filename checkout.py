"""
Checkout: price a cart against current product prices, apply a discount
code if it is still valid, and turn the result into an order.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

import storage
from errors import ProductNotFound
from money import apply_discount, apply_rate, format_cents
from schemas import CartItem, CheckoutRequest

logger = structlog.get_logger(__name__)

INITIAL_STATUS = "processing"


@dataclass
class Totals:
    subtotal_cents: int
    total_cents: int
    discount_code: Optional[str] = None
    lines: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def discount_cents(self) -> int:
        return self.subtotal_cents - self.total_cents


def discount_is_valid(discount: Optional[dict], now: Optional[datetime] = None) -> bool:
    if not discount or not discount.get("is_active", False):
        return False
    now = now or datetime.now(timezone.utc)
    valid_until = discount["valid_until"]
    if valid_until.tzinfo is None:
        valid_until = valid_until.replace(tzinfo=timezone.utc)
    return valid_until > now


def sum_line_items(lines: Iterable[Tuple[int, int]]) -> int:
    """Sum (price_cents, quantity) pairs."""
    return sum(price * qty for price, qty in lines)


def price_items(items: List[CartItem]) -> List[Dict[str, Any]]:
    lines = []
    for item in items:
        product = storage.get_product(item.product_id)
        if not product:
            raise ProductNotFound(item.product_id)
        if item.quantity > product.get("stock", 0):
            # stock is not reserved or decremented at checkout
            logger.warning("quantity_exceeds_stock", product_id=item.product_id,
                           quantity=item.quantity, stock=product.get("stock", 0))
        lines.append({
            "product_id": item.product_id,
            "quantity": item.quantity,
            "size": item.size,
            "color": item.color,
            "price_cents": product["price_cents"],
        })
    return lines


def compute_total(items: List[CartItem], discount_code: Optional[str] = None,
                  now: Optional[datetime] = None) -> Totals:
    lines = price_items(items)
    subtotal = sum_line_items((line["price_cents"], line["quantity"]) for line in lines)
    totals = Totals(subtotal_cents=subtotal, total_cents=subtotal, lines=lines)
    if not discount_code:
        return totals

    discount = storage.get_discount_by_code(discount_code)
    if discount_is_valid(discount, now):
        totals.total_cents = apply_discount(subtotal, discount["percentage_bp"])
        totals.discount_code = discount["code"]
    else:
        logger.info("discount_skipped", code=discount_code, reason="expired" if discount else "unknown")
    return totals


def quote(items: List[CartItem], discount_code: Optional[str], tax_rate: Decimal) -> Dict[str, Any]:
    totals = compute_total(items, discount_code)
    tax = apply_rate(totals.total_cents, tax_rate)
    return {
        "subtotal": format_cents(totals.subtotal_cents),
        "discount": format_cents(totals.discount_cents),
        "total": format_cents(totals.total_cents),
        "tax": format_cents(tax),
        "grand_total": format_cents(totals.total_cents + tax),
        "discount_applied": totals.discount_code is not None,
    }


def place_order(user_id: str, request: CheckoutRequest) -> dict:
    totals = compute_total(request.items, request.discount_code)
    order = storage.create_order(
        user_id=user_id,
        items=totals.lines,
        total_cents=totals.total_cents,
        shipping_address=request.shipping_address.model_dump(),
        status=INITIAL_STATUS,
        discount_code=totals.discount_code,
    )
    logger.info("checkout_completed", order_id=str(order["_id"]), user_id=user_id,
                total=format_cents(totals.total_cents), discount_code=totals.discount_code)
    return order
