from __future__ import annotations

import io
from datetime import date, timedelta

from flask import Flask, request, send_file

from ..common.http import admin_required, current_org_id, current_role, ok, query_date, query_int
from ..container import Container
from ..core.constants import DEFAULT_REPORT_DAYS
from ..core.exceptions import ValidationError
from .service import report_to_csv, report_to_excel

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _period() -> tuple[date, date]:
    end = query_date("end_date", date.today())
    start = query_date("start_date", end - timedelta(days=DEFAULT_REPORT_DAYS - 1))
    return start, end


def register(app: Flask, container: Container) -> None:
    @app.route("/api/reports/attendance", methods=["GET"], endpoint="report_attendance")
    @admin_required
    def report_attendance():
        start, end = _period()
        fmt = (request.args.get("format") or "json").lower()
        if fmt not in ("json", "csv", "xlsx"):
            raise ValidationError("Format must be json, csv or xlsx")

        data = container.report_service.build_attendance_report(
            current_role=current_role(),
            org_id=current_org_id(),
            start=start,
            end=end,
            user_id=query_int("user_id"),
            department=(request.args.get("department") or "").strip() or None,
        )
        filename = f"attendance_{start:%Y%m%d}_{end:%Y%m%d}"

        if fmt == "csv":
            return app.response_class(
                report_to_csv(data),
                mimetype="text/csv",
                headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
            )
        if fmt == "xlsx":
            return send_file(
                io.BytesIO(report_to_excel(data)),
                download_name=f"{filename}.xlsx",
                as_attachment=True,
                mimetype=XLSX_MIMETYPE,
            )
        return ok(
            {
                "start_date": start.strftime("%Y-%m-%d"),
                "end_date": end.strftime("%Y-%m-%d"),
                "rows": data.rows,
                "summary": data.summary,
            }
        )

    @app.route("/api/reports/tasks", methods=["GET"], endpoint="report_tasks")
    @admin_required
    def report_tasks():
        start, end = _period()
        performance = container.report_service.task_performance(
            current_role=current_role(), org_id=current_org_id(), start=start, end=end
        )
        return ok(
            {
                "start_date": start.strftime("%Y-%m-%d"),
                "end_date": end.strftime("%Y-%m-%d"),
                "performance": performance,
            }
        )
