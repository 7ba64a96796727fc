# Overview: Per-month invoice number allocation backed by a counter row.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InvoiceSequence, Sale
from inventory_api.time_utils import utcnow


PAD = 4


class InvoiceSequenceError(Exception):
    """Raised when an invoice number cannot be allocated."""


def period_for(moment: datetime) -> str:
    return moment.strftime("%Y%m")


def format_invoice_number(prefix: str, period: str, number: int) -> str:
    return f"{prefix}{period}{number:0{PAD}d}"


def _seed_from_existing(prefix: str, period: str) -> int:
    """
    Highest sequence already used for the period, or 0.

    Only matters the first time a period is seen (e.g. a database that
    predates the counter table).
    """
    month_prefix = f"{prefix}{period}"
    last = (
        db.session.query(func.max(Sale.invoice_number))
        .filter(Sale.invoice_number.like(f"{month_prefix}%"))
        .scalar()
    )
    if not last:
        return 0
    try:
        return int(last[len(month_prefix):])
    except ValueError:
        raise InvoiceSequenceError(f"Unparseable invoice number: {last}")


def _bump(period: str) -> int | None:
    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.period == period)
        .values(next_number=InvoiceSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    db.session.flush()
    current = (
        db.session.query(InvoiceSequence.next_number)
        .filter_by(period=period)
        .scalar()
    )
    return current - 1


def next_invoice_number(now: datetime | None = None, prefix: str | None = None) -> str:
    """
    Atomically allocate the next invoice number for the month of `now`.

    Format: prefix + YYYYMM + 4-digit sequence (INV2026100001).

    Never commits. The increment belongs to the caller's transaction, so a
    rolled-back sale also rolls back its number and the month stays gapless.
    """
    now = now or utcnow()
    prefix = prefix or current_app.config.get("INVOICE_PREFIX", "INV")
    period = period_for(now)

    number = _bump(period)
    if number is None:
        seed = _seed_from_existing(prefix, period)
        seq = InvoiceSequence(period=period, next_number=seed + 2)
        try:
            with db.session.begin_nested():
                db.session.add(seq)
            number = seed + 1
        except IntegrityError:
            # Another writer created the period row first
            number = _bump(period)
            if number is None:
                raise InvoiceSequenceError(f"Could not allocate invoice number for {period}")

    return format_invoice_number(prefix, period, number)
