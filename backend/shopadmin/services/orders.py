"""Order placement and stock bookkeeping.

Everything one order touches (stock, order row, items, coupon usage) is
written in a single session transaction: either all of it commits or the
session is rolled back.
"""
from __future__ import annotations
import logging
from collections import OrderedDict
from typing import Any, Collection, Dict, Optional, Tuple
from flask import abort
from sqlalchemy import select, update, func
from shopadmin import get_db
from shopadmin.models.authz import utcnow
from shopadmin.models.customer import Customer
from shopadmin.models.product import Product
from shopadmin.models.order import Order, OrderItem
from shopadmin.models.marketing import Coupon
from shopadmin.utils.validation import parse_int, parse_number

logger = logging.getLogger(__name__)


def next_order_number(session, year: Optional[int] = None) -> str:
    year = year or utcnow().year
    prefix = f"ORD-{year}-"
    seq = session.execute(select(func.count(Order.id)).where(Order.order_number.like(f"{prefix}%"))).scalar_one() + 1
    number = f"{prefix}{seq:06d}"
    # deleted orders leave gaps, so the count can point at a taken number
    while session.execute(select(Order.id).where(Order.order_number==number)).first():
        seq += 1
        number = f"{prefix}{seq:06d}"
    return number


def _merge_items(raw_items) -> "OrderedDict[int, int]":
    if not isinstance(raw_items, list) or not raw_items:
        abort(400, description='items required')
    merged: "OrderedDict[int, int]" = OrderedDict()
    for raw in raw_items:
        if not isinstance(raw, dict):
            abort(400, description='items invalid')
        product_id = parse_int(raw.get('product_id'), 'product_id', minimum=1)
        qty = parse_int(raw.get('quantity'), 'quantity', minimum=1)
        merged[product_id] = merged.get(product_id, 0) + qty
    return merged


def compute_discount(coupon: Coupon, subtotal: float, shipping: float) -> Tuple[float, float]:
    """Return (discount_amount, shipping_amount) after applying coupon."""
    if coupon.type == Coupon.TYPE_PERCENTAGE:
        discount = subtotal * (coupon.value or 0) / 100
        if coupon.maximum_discount is not None:
            discount = min(discount, coupon.maximum_discount)
        return round(discount, 2), shipping
    if coupon.type == Coupon.TYPE_FIXED:
        return round(min(coupon.value or 0, subtotal), 2), shipping
    return 0.0, 0.0  # FREE_SHIPPING


def validate_coupon(session, code: str, subtotal: float, product_ids: Collection[int] = (),
                    category_ids: Collection[int] = ()) -> Coupon:
    """Load the coupon for code or abort 400 when the order cannot use it.

    A non-empty applicable_products or applicable_categories list needs at
    least one order line whose product (or its category) is listed.
    """
    coupon = session.execute(select(Coupon).where(Coupon.code==code.strip().upper())).scalar_one_or_none()
    if not coupon:
        abort(400, description='coupon not found')
    now = utcnow()
    if coupon.status != Coupon.STATUS_ACTIVE:
        abort(400, description='coupon inactive')
    if coupon.starts_at and coupon.starts_at > now:
        abort(400, description='coupon not started')
    if coupon.is_expired(now):
        abort(400, description='coupon expired')
    if coupon.is_exhausted():
        abort(400, description='coupon usage limit reached')
    if coupon.minimum_amount is not None and subtotal < coupon.minimum_amount:
        abort(400, description=f'order subtotal below coupon minimum {coupon.minimum_amount:g}')
    if coupon.applicable_products or coupon.applicable_categories:
        matches = set(coupon.applicable_products or ()) & set(product_ids)
        matches |= set(coupon.applicable_categories or ()) & set(category_ids)
        if not matches:
            abort(400, description='coupon does not apply to these products')
    return coupon


def place_order(data: Dict[str, Any], created_by_id: Optional[int]) -> Order:
    session = get_db()
    try:
        order = _build_order(session, data, created_by_id)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info('order %s placed for customer %s total %.2f', order.order_number, order.customer_id, order.total_amount)
    return order


def _build_order(session, data: Dict[str, Any], created_by_id: Optional[int]) -> Order:
    customer_id = parse_int(data.get('customer_id'), 'customer_id', minimum=1)
    lines = _merge_items(data.get('items', data.get('order_items')))
    customer = session.get(Customer, customer_id)
    if not customer:
        abort(400, description='customer not found')

    items = []
    category_ids = set()
    subtotal = 0.0
    for product_id, qty in lines.items():
        product = session.get(Product, product_id)
        if not product:
            abort(400, description=f'product {product_id} not found')
        if product.category_id is not None:
            category_ids.add(product.category_id)
        if product.track_quantity:
            # conditional decrement: never lets stock go below zero
            res = session.execute(
                update(Product)
                .where(Product.id==product_id, Product.quantity >= qty)
                .values(quantity=Product.quantity - qty)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                abort(400, description=f'insufficient stock for {product.sku}')
            session.expire(product, ['quantity'])
        line_total = round(product.price * qty, 2)
        subtotal += line_total
        items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            quantity=qty,
            price=product.price,
            total_amount=line_total,
        ))
    subtotal = round(subtotal, 2)

    shipping = parse_number(data.get('shipping_amount'), 'shipping_amount', allow_none=True) or 0.0
    tax = parse_number(data.get('tax_amount'), 'tax_amount', allow_none=True) or 0.0
    discount = 0.0
    coupon = None
    if data.get('coupon_code'):
        coupon = validate_coupon(session, str(data['coupon_code']), subtotal, lines.keys(), category_ids)
        discount, shipping = compute_discount(coupon, subtotal, shipping)
        res = session.execute(
            update(Coupon)
            .where(Coupon.id==coupon.id, (Coupon.usage_limit.is_(None)) | (Coupon.usage_count < Coupon.usage_limit))
            .values(usage_count=Coupon.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            abort(400, description='coupon usage limit reached')
        session.expire(coupon, ['usage_count'])

    order = Order(
        order_number=next_order_number(session),
        customer_id=customer.id,
        customer_email=customer.email,
        status=Order.STATUS_PENDING,
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=round(tax, 2),
        shipping_amount=round(shipping, 2),
        total_amount=round(max(subtotal - discount, 0) + tax + shipping, 2),
        coupon_id=coupon.id if coupon else None,
        notes=data.get('notes'),
        shipping_address=data.get('shipping_address'),
        created_by_id=created_by_id,
        items=items,
    )
    session.add(order)
    session.flush()
    return order


def restock_order(session, order: Order):
    """Give the quantities of order back to tracked products (no commit)."""
    for item in order.items:
        session.execute(
            update(Product)
            .where(Product.id==item.product_id, Product.track_quantity.is_(True))
            .values(quantity=Product.quantity + item.quantity)
            .execution_options(synchronize_session=False)
        )
        product = session.get(Product, item.product_id)
        if product is not None:
            session.expire(product, ['quantity'])
