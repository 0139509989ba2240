"""Aggregations behind the revenue, analytics and report endpoints.

All builders take an explicit session and return plain dicts/lists so they
can be rendered as JSON or flattened to CSV.
"""
from __future__ import annotations
import csv
import io
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func

from shopadmin.models.authz import utcnow
from shopadmin.models.order import Order, OrderItem
from shopadmin.models.customer import Customer
from shopadmin.models.product import Product

PERIOD_DAYS = {'30days': 30, '90days': 90}
PERIODS = ('30days', '90days', '12months')
REPORT_TYPES = ('sales', 'inventory', 'customers', 'products')
# orders counted as realised sales in customer and product reports
FULFILLED_STATUSES = (Order.STATUS_DELIVERED, Order.STATUS_COMPLETED)


def rfm_score(recency_days: int, frequency: int, monetary: float) -> str:
    r = 5 if recency_days <= 30 else 4 if recency_days <= 60 else 3 if recency_days <= 90 else 2 if recency_days <= 180 else 1
    f = 5 if frequency >= 10 else 4 if frequency >= 7 else 3 if frequency >= 5 else 2 if frequency >= 3 else 1
    m = 5 if monetary >= 100000 else 4 if monetary >= 50000 else 3 if monetary >= 25000 else 2 if monetary >= 10000 else 1
    total = r + f + m
    if total >= 13:
        return 'Champion'
    if total >= 11:
        return 'Loyal Customer'
    if total >= 9:
        return 'Potential Loyalist'
    if total >= 7:
        return 'At Risk'
    if total >= 5:
        return 'Cannot Lose Them'
    return 'Lost Customer'


def customer_segment(total_spent: float, order_count: int) -> str:
    if total_spent >= 200000 and order_count >= 10:
        return 'VIP'
    if total_spent >= 100000 or order_count >= 5:
        return 'Regular'
    if order_count <= 2:
        return 'New'
    return 'At Risk'


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    if period == '12months':
        return _shift_months(now, -12)
    return now - timedelta(days=PERIOD_DAYS.get(period, 30))


def _shift_months(dt: datetime, months: int) -> datetime:
    idx = dt.year * 12 + dt.month - 1 + months
    year, month = divmod(idx, 12)
    month += 1
    # clamp the day for short months
    for day in (dt.day, 30, 29, 28):
        try:
            return dt.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(dt)


def revenue_summary(session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Dict[str, Any]:
    q = select(func.coalesce(func.sum(Order.total_amount), 0), func.count(Order.id)).where(Order.status==Order.STATUS_COMPLETED)
    if start is not None:
        q = q.where(Order.created_at >= start)
    if end is not None:
        q = q.where(Order.created_at <= end)
    total, count = session.execute(q).one()
    return {'total_revenue': round(float(total or 0), 2), 'order_count': int(count or 0)}


def overview(session, period: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    start = period_start(period, now)
    total, orders = session.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0), func.count(Order.id))
        .where(Order.created_at >= start, Order.status!=Order.STATUS_CANCELLED)
    ).one()
    new_customers = session.execute(select(func.count(Customer.id)).where(Customer.created_at >= start)).scalar_one()
    repeat = (
        select(Order.customer_id)
        .where(Order.created_at >= start)
        .group_by(Order.customer_id)
        .having(func.count(Order.id) > 1)
        .subquery()
    )
    returning = session.execute(select(func.count()).select_from(repeat)).scalar_one()
    total = float(total or 0)
    orders = int(orders or 0)
    return {
        'period': period,
        'total_revenue': round(total, 2),
        'total_orders': orders,
        'total_customers': int(new_customers),
        'new_customers': max(int(new_customers) - int(returning), 0),
        'returning_customers': int(returning),
        'average_order_value': round(total / orders, 2) if orders else 0,
        'conversion_rate': round(orders / new_customers * 100, 2) if new_customers else 0,
    }


def sales_chart(session, now: Optional[datetime] = None) -> Dict[str, List]:
    """Revenue and order counts for the last 12 calendar months, oldest first."""
    now = now or utcnow()
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    labels, revenue, orders = [], [], []
    for offset in range(11, -1, -1):
        lo = _shift_months(this_month, -offset)
        hi = _shift_months(this_month, -offset + 1)
        total, count = session.execute(
            select(func.coalesce(func.sum(Order.total_amount), 0), func.count(Order.id))
            .where(Order.created_at >= lo, Order.created_at < hi, Order.status!=Order.STATUS_CANCELLED)
        ).one()
        labels.append(lo.strftime('%Y-%m'))
        revenue.append(round(float(total or 0), 2))
        orders.append(int(count or 0))
    return {'labels': labels, 'data': revenue, 'orders': orders}


def sales_report(session, start: datetime, end: datetime) -> Dict[str, Any]:
    rows = session.execute(
        select(Order.created_at, Order.total_amount, Order.customer_id)
        .where(Order.status==Order.STATUS_COMPLETED, Order.created_at >= start, Order.created_at <= end)
        .order_by(Order.created_at.asc())
    ).all()
    days: Dict[str, Dict[str, Any]] = {}
    for created_at, amount, customer_id in rows:
        key = created_at.date().isoformat()
        day = days.setdefault(key, {'date': key, 'revenue': 0.0, 'orders': 0, 'customers': set()})
        day['revenue'] += float(amount or 0)
        day['orders'] += 1
        day['customers'].add(customer_id)
    data = [
        {
            'date': d['date'],
            'revenue': round(d['revenue'], 2),
            'orders': d['orders'],
            'customers': len(d['customers']),
            'average_order_value': round(d['revenue'] / d['orders'], 2),
        }
        for d in days.values()
    ]
    total_revenue = sum(d['revenue'] for d in data)
    total_orders = sum(d['orders'] for d in data)
    summary = {
        'total_revenue': round(total_revenue, 2),
        'total_orders': total_orders,
        'total_customers': len({cid for _, _, cid in rows}),
        'average_order_value': round(total_revenue / total_orders, 2) if total_orders else 0,
    }
    return {'data': data, 'summary': summary}


def inventory_report(session, low_threshold: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    since = (now or utcnow()) - timedelta(days=365)
    sold = dict(session.execute(
        select(OrderItem.product_id, func.sum(OrderItem.quantity))
        .join(Order, OrderItem.order_id==Order.id)
        .where(Order.created_at >= since, Order.status!=Order.STATUS_CANCELLED)
        .group_by(OrderItem.product_id)
    ).all())
    data = []
    for p in session.execute(select(Product).order_by(Product.id.asc())).scalars().all():
        units = int(sold.get(p.id) or 0)
        turnover = round(units / p.quantity, 1) if p.quantity > 0 else 0
        if p.quantity == 0:
            status = 'OUT_OF_STOCK'
        elif p.quantity <= low_threshold:
            status = 'LOW_STOCK'
        else:
            status = 'IN_STOCK'
        data.append({
            'id': p.id,
            'product_name': p.name,
            'sku': p.sku,
            'category': p.category.name if p.category else 'Uncategorized',
            'brand': p.brand.name if p.brand else 'No Brand',
            'current_stock': p.quantity,
            'reorder_level': low_threshold,
            'status': status,
            'cost': p.cost_price,
            'value': round((p.price or 0) * p.quantity, 2),
            'units_sold': units,
            'turnover_rate': turnover,
            'days_on_hand': int(365 / turnover) if turnover > 0 else 0,
        })
    summary = {
        'total_products': len(data),
        'in_stock': sum(1 for d in data if d['status'] == 'IN_STOCK'),
        'low_stock': sum(1 for d in data if d['status'] == 'LOW_STOCK'),
        'out_of_stock': sum(1 for d in data if d['status'] == 'OUT_OF_STOCK'),
        'total_value': round(sum(d['value'] for d in data), 2),
    }
    return {'data': data, 'summary': summary}


def customers_report(session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    stats = {
        cid: (float(spent or 0), int(count), last)
        for cid, spent, count, last in session.execute(
            select(Order.customer_id, func.sum(Order.total_amount), func.count(Order.id), func.max(Order.created_at))
            .where(Order.status.in_(FULFILLED_STATUSES))
            .group_by(Order.customer_id)
        ).all()
    }
    data = []
    for c in session.execute(select(Customer).order_by(Customer.id.asc())).scalars().all():
        spent, count, last = stats.get(c.id, (0.0, 0, None))
        last = last or c.created_at
        recency = (now - last).days
        data.append({
            'id': c.id,
            'name': c.full_name,
            'email': c.email,
            'segment': customer_segment(spent, count),
            'registration_date': c.created_at.date().isoformat(),
            'last_order_date': last.date().isoformat(),
            'total_orders': count,
            'total_spent': round(spent, 2),
            'average_order_value': round(spent / count, 2) if count else 0,
            'lifetime_days': (now - c.created_at).days,
            'rfm_score': rfm_score(recency, count, spent),
            'status': 'ACTIVE' if recency <= 90 else 'INACTIVE',
        })
    summary = {
        'total_customers': len(data),
        'active_customers': sum(1 for d in data if d['status'] == 'ACTIVE'),
        'inactive_customers': sum(1 for d in data if d['status'] == 'INACTIVE'),
        'vip_customers': sum(1 for d in data if d['segment'] == 'VIP'),
        'average_lifetime_value': round(sum(d['total_spent'] for d in data) / len(data), 2) if data else 0,
    }
    return {'data': data, 'summary': summary}


def products_report(session) -> Dict[str, Any]:
    rows = session.execute(
        select(OrderItem.product_id, func.sum(OrderItem.quantity), func.sum(OrderItem.total_amount))
        .join(Order, OrderItem.order_id==Order.id)
        .where(Order.status.in_(FULFILLED_STATUSES))
        .group_by(OrderItem.product_id)
    ).all()
    data = []
    for product_id, units, revenue in rows:
        p = session.get(Product, product_id)
        units = int(units or 0)
        revenue = float(revenue or 0)
        profit = None
        margin = None
        if p is not None and p.cost_price is not None:
            profit = round(revenue - p.cost_price * units, 2)
            margin = round(profit / revenue * 100, 2) if revenue else 0
        data.append({
            'id': product_id,
            'product_name': p.name if p else 'Unknown Product',
            'category': p.category.name if p and p.category else 'Uncategorized',
            'brand': p.brand.name if p and p.brand else 'No Brand',
            'units_sold': units,
            'revenue': round(revenue, 2),
            'gross_profit': profit,
            'margin_percent': margin,
        })
    data.sort(key=lambda d: d['revenue'], reverse=True)
    summary = {
        'total_products': len(data),
        'total_units_sold': sum(d['units_sold'] for d in data),
        'total_revenue': round(sum(d['revenue'] for d in data), 2),
    }
    return {'data': data, 'summary': summary}


def to_csv(rows: List[Dict[str, Any]]) -> str:
    if not rows:
        return ''
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(rows[0].keys()), lineterminator='\n')
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()
