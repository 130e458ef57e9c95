"""
Read-only aggregates for one establishment over a date range.

Nothing here checks access: callers pass an establishment_id they have
already authorised (the HTTP layer runs ensure_access first).
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from hotel_api.extensions import db
from hotel_api.common.http import parse_date
from hotel_api.models.booking import Booking, BOOKING_STATUSES, OCCUPYING_STATUSES
from hotel_api.models.establishment import Accommodation
from hotel_api.models.finance import Invoice, Expense, REVENUE_INVOICE_STATUSES

PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "week": "%Y-W%U",
    "month": "%Y-%m",
}


def _d(v) -> date:
    d = parse_date(v)
    if d is None:
        raise ValueError(f"invalid date: {v!r}")
    return d


def _day_span(start, end):
    """[start 00:00, end 23:59:59.999999] for DateTime columns."""
    return datetime.combine(_d(start), time.min), datetime.combine(_d(end), time.max)


def _f(x) -> float:
    return float(Decimal(str(x or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _collected():
    return Invoice.total - Invoice.balance


class AnalyticsService:

    @staticmethod
    def get_total_revenue(establishment_id, start, end) -> float:
        lo, hi = _day_span(start, end)
        total = (
            db.session.query(func.coalesce(func.sum(_collected()), 0))
            .filter(
                Invoice.establishment_id == establishment_id,
                Invoice.issued_at >= lo,
                Invoice.issued_at <= hi,
                Invoice.status.in_(REVENUE_INVOICE_STATUSES),
            )
            .scalar()
        )
        return _f(total)

    @staticmethod
    def get_total_expenses(establishment_id, start, end) -> float:
        total = (
            db.session.query(func.coalesce(func.sum(Expense.amount), 0))
            .filter(
                Expense.establishment_id == establishment_id,
                Expense.date >= _d(start),
                Expense.date <= _d(end),
                Expense.status == "approved",
            )
            .scalar()
        )
        return _f(total)

    @staticmethod
    def get_booking_stats(establishment_id, start, end) -> dict:
        rows = (
            db.session.query(Booking.status, func.count(Booking.id))
            .filter(
                Booking.establishment_id == establishment_id,
                Booking.check_in >= _d(start),
                Booking.check_in <= _d(end),
            )
            .group_by(Booking.status)
            .all()
        )
        stats = {"total": 0}
        stats.update({s: 0 for s in BOOKING_STATUSES})
        for status, n in rows:
            stats["total"] += n
            if status in stats:
                stats[status] = n
        return stats

    @staticmethod
    def get_occupancy_rate(establishment_id, start, end) -> float:
        """
        Occupied accommodation-nights / (accommodations x nights in range) x 100.
        Each confirmed/completed booking's [check_in, check_out) is clipped to
        [start, end) before counting.
        """
        start, end = _d(start), _d(end)
        accommodations = (
            db.session.query(func.count(Accommodation.id))
            .filter(Accommodation.establishment_id == establishment_id)
            .scalar()
        ) or 0
        total_days = max((end - start).days, 0)
        possible = accommodations * total_days
        if possible <= 0:
            return 0.0

        bookings = (
            db.session.query(Booking.check_in, Booking.check_out)
            .filter(
                Booking.establishment_id == establishment_id,
                Booking.status.in_(OCCUPYING_STATUSES),
                Booking.check_in < end,
                Booking.check_out > start,
            )
            .all()
        )
        occupied = 0
        for check_in, check_out in bookings:
            nights = (min(check_out, end) - max(check_in, start)).days
            occupied += max(0, nights)

        return round(occupied / possible * 100, 2)

    @staticmethod
    def get_financial_summary(establishment_id, start, end) -> dict:
        revenue = AnalyticsService.get_total_revenue(establishment_id, start, end)
        expenses = AnalyticsService.get_total_expenses(establishment_id, start, end)
        net = round(revenue - expenses, 2)
        margin = round(net / revenue * 100, 2) if revenue > 0 else 0
        return {
            "revenue": revenue,
            "expenses": expenses,
            "net_profit": net,
            "profit_margin": margin,
            "bookings": AnalyticsService.get_booking_stats(establishment_id, start, end),
            "occupancy": AnalyticsService.get_occupancy_rate(establishment_id, start, end),
        }

    @staticmethod
    def get_revenue_by_period(establishment_id, start, end, group_by: str = "day") -> list[dict]:
        fmt = PERIOD_FORMATS.get(group_by)
        if fmt is None:
            raise ValueError(f"group_by must be one of {', '.join(PERIOD_FORMATS)}")
        lo, hi = _day_span(start, end)
        rows = (
            db.session.query(Invoice.issued_at, _collected())
            .filter(
                Invoice.establishment_id == establishment_id,
                Invoice.issued_at >= lo,
                Invoice.issued_at <= hi,
                Invoice.status.in_(REVENUE_INVOICE_STATUSES),
            )
            .order_by(Invoice.issued_at)
            .all()
        )
        # bucketing in Python keeps the week/day keys identical across backends
        buckets: "OrderedDict[str, list]" = OrderedDict()
        for issued_at, amount in rows:
            key = issued_at.strftime(fmt)
            b = buckets.setdefault(key, [Decimal("0"), 0])
            b[0] += Decimal(str(amount or 0))
            b[1] += 1
        return [
            {"period": k, "revenue": _f(v[0]), "count": v[1]}
            for k, v in sorted(buckets.items())
        ]

    @staticmethod
    def get_expenses_by_category(establishment_id, start, end) -> list[dict]:
        total = func.sum(Expense.amount)
        rows = (
            db.session.query(Expense.category, total, func.count(Expense.id))
            .filter(
                Expense.establishment_id == establishment_id,
                Expense.date >= _d(start),
                Expense.date <= _d(end),
                Expense.status == "approved",
            )
            .group_by(Expense.category)
            .order_by(total.desc())
            .all()
        )
        return [{"category": c, "amount": _f(t), "count": n} for c, t, n in rows]
