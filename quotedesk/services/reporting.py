"""
Financial reporting over approved quotes (read-only).

Every approved quote contributes the value of its approved proposal
(the proposal of quote.approved_supplier_id on that quote). Periods are
taken from the quote's creation timestamp.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import and_, extract, func

from ..errors import ValidationError
from ..models import QUOTE_APPROVED, Proposal, Quote, User
from ..security import Operation, enforce


# ASCII only: str.isdigit() also accepts superscripts that int() refuses
YEAR_RE = re.compile(r"[0-9]{4}")
MONTH_RE = re.compile(r"[0-9]{1,2}")


def _parse_year(value: Any) -> Optional[int]:
    raw = str(value).strip() if value is not None else ""
    if raw == "":
        return None
    if not YEAR_RE.fullmatch(raw):
        raise ValidationError("Year must be a 4-digit number")
    return int(raw)


def _parse_month(value: Any) -> Optional[int]:
    """Accepts '3' or '03'."""
    raw = str(value).strip() if value is not None else ""
    if raw == "":
        return None
    if not MONTH_RE.fullmatch(raw) or not 1 <= int(raw) <= 12:
        raise ValidationError("Month must be between 01 and 12")
    return int(raw)


def _approved_lines(session):
    return (
        session.query(Quote, Proposal, User)
        .join(
            Proposal,
            and_(Proposal.quote_id == Quote.id, Proposal.supplier_id == Quote.approved_supplier_id),
        )
        .join(User, User.id == Proposal.supplier_id)
        .filter(Quote.status == QUOTE_APPROVED)
    )


def financial_report(session, actor: User, year: Any = None, month: Any = None) -> dict:
    """
    Line items for approved quotes in the period, newest first.

    Returns {"items": [...], "total": Decimal, "count": int}; total is the
    exact sum of the included values.
    """
    enforce(actor, Operation.VIEW_FINANCIALS)

    year = _parse_year(year)
    month = _parse_month(month)

    q = _approved_lines(session)
    if year is not None:
        q = q.filter(extract("year", Quote.created_at) == year)
    if month is not None:
        q = q.filter(extract("month", Quote.created_at) == month)

    items = []
    total = Decimal("0.00")
    for quote, proposal, supplier in q.order_by(Quote.created_at.desc(), Quote.id.desc()).all():
        value = Decimal(proposal.value)
        total += value
        items.append(
            {
                "id": quote.id,
                "quote_number": quote.quote_number,
                "quote_name": quote.name,
                "supplier_type": quote.supplier_type,
                "created_at": quote.created_at.isoformat() if quote.created_at else None,
                "value": value,
                "supplier_name": supplier.name,
                "supplier_company": supplier.company_name,
            }
        )

    return {"items": items, "total": total, "count": len(items)}


def financial_summary(session, actor: User) -> list[dict]:
    """Count and total per (YYYY-MM, supplier type), most recent month first."""
    enforce(actor, Operation.VIEW_FINANCIALS)

    year_expr = extract("year", Quote.created_at)
    month_expr = extract("month", Quote.created_at)

    rows = (
        session.query(
            year_expr.label("year"),
            month_expr.label("month"),
            Quote.supplier_type,
            func.count(Proposal.id),
            func.sum(Proposal.value),
        )
        .join(
            Proposal,
            and_(Proposal.quote_id == Quote.id, Proposal.supplier_id == Quote.approved_supplier_id),
        )
        .filter(Quote.status == QUOTE_APPROVED)
        .group_by(year_expr, month_expr, Quote.supplier_type)
        .order_by(year_expr.desc(), month_expr.desc(), Quote.supplier_type.asc())
        .all()
    )

    return [
        {
            "month": f"{int(year):04d}-{int(month):02d}",
            "supplier_type": supplier_type,
            "count": int(count),
            "total": Decimal(str(total)) if total is not None else Decimal("0.00"),
        }
        for year, month, supplier_type, count, total in rows
    ]
