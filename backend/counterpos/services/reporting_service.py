# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from counterpos.extensions import db
from counterpos.models import Category, Customer, Product, Sale
from counterpos.models.sales import SALE_STATUS_CREDIT
from counterpos.services.products_service import low_stock_report
from counterpos.services.tenant_service import current_namespace
from counterpos.time_utils import parse_iso_datetime, to_utc_z, utcnow
from counterpos.validation import ValidationError


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 datetimes")
    return start_dt, end_dt


def outstanding_credit(customer_id: int | None = None) -> int:
    """Sum of (total_price - paid_amount) over Credit sales."""
    q = db.session.query(
        func.coalesce(func.sum(Sale.total_price - Sale.paid_amount), 0)
    ).filter(
        Sale.namespace == current_namespace(),
        Sale.status == SALE_STATUS_CREDIT,
    )
    if customer_id is not None:
        q = q.filter(Sale.customer_id == customer_id)
    return int(q.scalar() or 0)


def dashboard_summary(start: str | None = None, end: str | None = None) -> dict:
    namespace = current_namespace()
    start_dt, end_dt = _parse_range(start, end)

    sales_q = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_price), 0),
    ).filter(Sale.namespace == namespace)
    if start_dt:
        sales_q = sales_q.filter(Sale.sale_date >= start_dt)
    if end_dt:
        sales_q = sales_q.filter(Sale.sale_date <= end_dt)
    sales_count, revenue = sales_q.one()

    return {
        "sales_count": int(sales_count or 0),
        "revenue": int(revenue or 0),
        "outstanding_credit": outstanding_credit(),
        "customers": db.session.query(Customer).filter_by(namespace=namespace).count(),
        "products": db.session.query(Product).filter_by(namespace=namespace).count(),
        "categories": db.session.query(Category).filter_by(namespace=namespace).count(),
        "low_stock": len(low_stock_report()),
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "generated_at": to_utc_z(utcnow()),
    }
