from __future__ import annotations

import io
import logging
import os
from datetime import date, datetime

import openpyxl
from flask import current_app
from sqlalchemy import func

from hotel_api.extensions import db
from hotel_api.common.http import parse_date
from hotel_api.models.booking import Booking, OCCUPYING_STATUSES
from hotel_api.models.employee import Employee
from hotel_api.models.establishment import Accommodation, Establishment
from hotel_api.models.payroll import Payroll, PAYROLL_STATUSES
from hotel_api.services.analytics_service import AnalyticsService, _f

log = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TOP_ACCOMMODATIONS = 10


def _est_ref(establishment_id):
    est = db.session.get(Establishment, establishment_id)
    return est, ({"id": est.id, "name": est.name} if est else None)


def _title(prefix: str, est) -> str:
    return f"{prefix} - {est.name if est else 'Establishment'}"


def _in_range(q, start: date, end: date):
    return q.filter(Booking.check_in >= start, Booking.check_in <= end)


def _top_accommodations(establishment_id, start: date, end: date) -> list[dict]:
    revenue = func.coalesce(func.sum(Booking.total_price), 0)
    rows = (
        _in_range(
            db.session.query(Accommodation.id, Accommodation.name, Accommodation.type,
                             func.count(Booking.id), revenue)
            .join(Accommodation, Booking.accommodation_id == Accommodation.id),
            start, end,
        )
        .filter(Booking.establishment_id == establishment_id, Booking.status.in_(OCCUPYING_STATUSES))
        .group_by(Accommodation.id, Accommodation.name, Accommodation.type)
        .order_by(revenue.desc())
        .limit(TOP_ACCOMMODATIONS)
        .all()
    )
    return [
        {"accommodation_id": i, "name": n, "type": t, "bookings": c, "revenue": _f(r)}
        for i, n, t, c, r in rows
    ]


def _bookings_by_status(establishment_id, start: date, end: date) -> dict:
    rows = (
        _in_range(
            db.session.query(Booking.status, func.count(Booking.id), func.coalesce(func.sum(Booking.total_price), 0)),
            start, end,
        )
        .filter(Booking.establishment_id == establishment_id)
        .group_by(Booking.status)
        .all()
    )
    return {s: {"count": c, "revenue": _f(r)} for s, c, r in rows}


def _accommodation_occupancy(establishment_id, start: date, end: date) -> list[dict]:
    rows = (
        db.session.query(Accommodation.id, Accommodation.name, Accommodation.type, func.count(Booking.id))
        .join(Accommodation, Booking.accommodation_id == Accommodation.id)
        .filter(
            Booking.establishment_id == establishment_id,
            Booking.status.in_(OCCUPYING_STATUSES),
            Booking.check_in < end,
            Booking.check_out > start,
        )
        .group_by(Accommodation.id, Accommodation.name, Accommodation.type)
        .order_by(func.count(Booking.id).desc())
        .all()
    )
    return [{"accommodation_id": i, "name": n, "type": t, "bookings": c} for i, n, t, c in rows]


def _bookings_by_type(bookings) -> dict:
    out: dict = {}
    for b in bookings:
        t = b.accommodation.type if b.accommodation else "unknown"
        g = out.setdefault(t, {"count": 0, "revenue": 0.0})
        g["count"] += 1
        g["revenue"] = round(g["revenue"] + float(b.total_price or 0), 2)
    return out


class ReportService:
    """Report documents assembled from AnalyticsService aggregates."""

    @staticmethod
    def generate_financial_report(establishment_id, start, end) -> dict:
        start, end = parse_date(start), parse_date(end)
        est, ref = _est_ref(establishment_id)
        summary = AnalyticsService.get_financial_summary(establishment_id, start, end)
        return {
            "title": _title("Financial report", est),
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "establishment": ref,
            "summary": {
                "revenue": summary["revenue"],
                "expenses": summary["expenses"],
                "net_profit": summary["net_profit"],
                "profit_margin": summary["profit_margin"],
                "bookings": summary["bookings"]["total"],
                "occupancy_rate": summary["occupancy"],
            },
            "details": {
                "revenue_by_period": AnalyticsService.get_revenue_by_period(establishment_id, start, end, "day"),
                "expenses_by_category": AnalyticsService.get_expenses_by_category(establishment_id, start, end),
                "top_accommodations": _top_accommodations(establishment_id, start, end),
                "bookings_by_status": _bookings_by_status(establishment_id, start, end),
            },
            "generated_at": datetime.utcnow().isoformat(),
        }

    @staticmethod
    def generate_hr_report(establishment_id, year: int, month: int) -> dict:
        """Head count and payroll totals; only this establishment's employees are counted."""
        est, ref = _est_ref(establishment_id)
        year, month = int(year), int(month)

        active = (
            db.session.query(func.count(Employee.id))
            .filter(Employee.establishment_id == establishment_id, Employee.status == "active")
            .scalar()
        ) or 0

        payrolls = (
            Payroll.query
            .join(Employee, Payroll.employee_id == Employee.id)
            .filter(
                Employee.establishment_id == establishment_id,
                Payroll.period_year == year,
                Payroll.period_month == month,
            )
            .order_by(Employee.last_name, Employee.first_name)
            .all()
        )
        by_status = {s: 0 for s in PAYROLL_STATUSES}
        for p in payrolls:
            by_status[p.status] = by_status.get(p.status, 0) + 1

        total_salary = _f(sum(
            float(p.net_salary or 0) for p in payrolls if p.status in ("approved", "paid")
        ))
        return {
            "title": _title("HR report", est),
            "period": {"year": year, "month": month},
            "establishment": ref,
            "summary": {
                "total_employees": active,
                "total_payrolls": len(payrolls),
                "total_salary": total_salary,
                "average_salary": round(total_salary / active, 2) if active else 0,
            },
            "details": {
                "payrolls_by_status": by_status,
                "payrolls": [
                    {
                        "employee_id": p.employee_id,
                        "employee_number": p.employee.employee_number,
                        "employee_name": p.employee.full_name,
                        "net_salary": _f(p.net_salary),
                        "status": p.status,
                    }
                    for p in payrolls
                ],
            },
            "generated_at": datetime.utcnow().isoformat(),
        }

    @staticmethod
    def generate_occupancy_report(establishment_id, start, end) -> dict:
        start, end = parse_date(start), parse_date(end)
        est, ref = _est_ref(establishment_id)
        bookings = (
            _in_range(Booking.query, start, end)
            .filter(Booking.establishment_id == establishment_id)
            .all()
        )
        return {
            "title": _title("Occupancy report", est),
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "establishment": ref,
            "summary": {
                "overall_occupancy": AnalyticsService.get_occupancy_rate(establishment_id, start, end),
                "total_bookings": len(bookings),
                "confirmed_bookings": sum(1 for b in bookings if b.status == "confirmed"),
                "completed_bookings": sum(1 for b in bookings if b.status == "completed"),
            },
            "details": {
                "accommodation_stats": _accommodation_occupancy(establishment_id, start, end),
                "bookings_by_type": _bookings_by_type(bookings),
            },
            "generated_at": datetime.utcnow().isoformat(),
        }

    @staticmethod
    def generate_comparison_report(establishment_ids, start, end) -> dict:
        start, end = parse_date(start), parse_date(end)
        rows = []
        for est_id in establishment_ids:
            est = db.session.get(Establishment, est_id)
            s = AnalyticsService.get_financial_summary(est_id, start, end)
            rows.append({
                "establishment_id": est_id,
                "name": est.name if est else "Unknown",
                "revenue": s["revenue"],
                "expenses": s["expenses"],
                "net_profit": s["net_profit"],
                "profit_margin": s["profit_margin"],
                "occupancy_rate": s["occupancy"],
                "bookings": s["bookings"]["total"],
            })
        return {
            "title": "Establishment comparison report",
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "establishments": rows,
            "totals": {
                "revenue": round(sum(r["revenue"] for r in rows), 2),
                "expenses": round(sum(r["expenses"] for r in rows), 2),
                "net_profit": round(sum(r["net_profit"] for r in rows), 2),
                "bookings": sum(r["bookings"] for r in rows),
            },
            "generated_at": datetime.utcnow().isoformat(),
        }

    # ---------- export ----------

    @staticmethod
    def render_xlsx(report: dict) -> bytes:
        """
        One "Summary" sheet (title, period, summary/totals key-values) plus one
        sheet per tabular section.
        """
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Summary"
        ws.append([report.get("title", "Report")])
        for k, v in (report.get("period") or {}).items():
            ws.append([f"period_{k}", v])
        if report.get("establishment"):
            ws.append(["establishment", report["establishment"].get("name")])
        ws.append([])
        for k, v in (report.get("summary") or report.get("totals") or {}).items():
            ws.append([k, v])

        sections = dict(report.get("details") or {})
        if "establishments" in report:
            sections["establishments"] = report["establishments"]

        for name, data in sections.items():
            sheet = wb.create_sheet(title=name[:31])
            if isinstance(data, list):
                headers = list(data[0].keys()) if data else []
                sheet.append(headers)
                for row in data:
                    sheet.append([row.get(h) for h in headers])
            elif isinstance(data, dict):
                nested = [v for v in data.values() if isinstance(v, dict)]
                if nested:
                    cols = sorted({c for v in nested for c in v})
                    sheet.append(["key"] + cols)
                    for k, v in data.items():
                        sheet.append([k] + [v.get(c) for c in cols])
                else:
                    sheet.append(["key", "value"])
                    for k, v in data.items():
                        sheet.append([k, v])

        out = io.BytesIO()
        wb.save(out)
        return out.getvalue()

    @staticmethod
    def export_xlsx(report: dict, path: str | None = None) -> str:
        """
        Write the workbook and return its path. Default location:
        <REPORTS_STORAGE_ROOT>/YYYY/MM/<slug>_<timestamp>.xlsx
        """
        content = ReportService.render_xlsx(report)
        if path is None:
            root = current_app.config.get("REPORTS_STORAGE_ROOT") or os.path.join(os.getcwd(), "reports_storage")
            now = datetime.utcnow()
            folder = os.path.join(root, str(now.year), f"{now.month:02d}")
            slug = "".join(c if c.isalnum() else "_" for c in report.get("title", "report").lower()).strip("_")
            path = os.path.join(folder, f"{slug}_{now:%Y%m%d%H%M%S}.xlsx")
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        log.info("report exported to %s (%d bytes)", path, len(content))
        return path
