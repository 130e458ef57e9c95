import io
from datetime import date

from flask import Blueprint, request, send_file

from hotel_api.common.auth import from_jwt, requires_roles
from hotel_api.common.http import ok, fail, parse_date
from hotel_api.services.report_service import ReportService, XLSX_MIME
from hotel_api.services.scoping import ensure_access

bp = Blueprint("reports", __name__, url_prefix="/api/v1/reports")

REPORT_ROLES = ("manager", "accountant")
KINDS = ("financial", "hr", "occupancy", "comparison")

def _range():
    today = date.today()
    start = parse_date(request.args.get("start_date")) or today.replace(day=1)
    end = parse_date(request.args.get("end_date")) or today
    return start, end

def _est_id(ctx):
    est_id = request.args.get("establishment_id", type=int)
    if est_id is None and not ctx.can_access_all():
        est_id = ctx.get_establishment_id()
    return est_id

def _build(kind: str):
    """Returns (report, error_response)."""
    ctx = from_jwt(f"report:{kind}")

    if kind == "comparison":
        raw = request.args.get("establishment_ids", "")
        try:
            ids = [int(x) for x in raw.split(",") if x.strip()]
        except ValueError:
            return None, fail("establishment_ids must be a comma separated list of ids", status=422)
        if not ids:
            return None, fail("establishment_ids is required", status=422)
        for est_id in ids:
            ensure_access(ctx, est_id, "report", est_id)
        start, end = _range()
        return ReportService.generate_comparison_report(ids, start, end), None

    est_id = _est_id(ctx)
    if est_id is None:
        return None, fail("establishment_id is required", status=422)
    ensure_access(ctx, est_id, "report", est_id)

    if kind == "hr":
        year = request.args.get("year", type=int) or date.today().year
        month = request.args.get("month", type=int) or date.today().month
        if not 1 <= month <= 12:
            return None, fail("month must be between 1 and 12", status=422)
        return ReportService.generate_hr_report(est_id, year, month), None

    start, end = _range()
    if end < start:
        return None, fail("end_date must be on or after start_date", status=422)
    if kind == "financial":
        return ReportService.generate_financial_report(est_id, start, end), None
    return ReportService.generate_occupancy_report(est_id, start, end), None

@bp.get("/<string:kind>")
@requires_roles(*REPORT_ROLES)
def get_report(kind):
    if kind not in KINDS:
        return fail("Unknown report", status=404)
    report, err = _build(kind)
    if err:
        return err
    return ok(report)

@bp.get("/<string:kind>/xlsx")
@requires_roles(*REPORT_ROLES)
def download_report(kind):
    if kind not in KINDS:
        return fail("Unknown report", status=404)
    report, err = _build(kind)
    if err:
        return err
    content = ReportService.render_xlsx(report)
    return send_file(
        io.BytesIO(content),
        mimetype=XLSX_MIME,
        as_attachment=True,
        download_name=f"{kind}_report.xlsx",
    )

@bp.post("/<string:kind>/export")
@requires_roles(*REPORT_ROLES)
def export_report(kind):
    """Stores the workbook under REPORTS_STORAGE_ROOT and returns its path."""
    if kind not in KINDS:
        return fail("Unknown report", status=404)
    report, err = _build(kind)
    if err:
        return err
    path = ReportService.export_xlsx(report)
    return ok({"path": path, "title": report.get("title")}, status=201)
