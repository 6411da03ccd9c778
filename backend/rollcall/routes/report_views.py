from io import BytesIO
from flask import request, jsonify, send_file, make_response
from rollcall.exports import export_filename, rows_to_csv, rows_to_html
from rollcall.extensions import settings_service
from rollcall.reports import ReportFilters, get_low_attendance, get_report


def _json_rows(rows):
    return [dict(row, date=row["date"].isoformat()) for row in rows]


def report_response(ctx):
    filters = ReportFilters.from_args(request.args)
    rows = get_report(ctx, filters)

    if request.args.get("format") == "html":
        response = make_response(rows_to_html(rows))
        response.headers["Content-Type"] = "text/html; charset=utf-8"
        return response

    return jsonify({
        "records": _json_rows(rows),
        "count": len(rows),
        "filters": filters.as_dict()
    }), 200


def export_response(ctx):
    filters = ReportFilters.from_args(request.args)
    rows = get_report(ctx, filters)

    return send_file(
        BytesIO(rows_to_csv(rows, ctx.role)),
        mimetype="text/csv",
        as_attachment=True,
        download_name=export_filename(ctx.role)
    )


def low_attendance_response(ctx):
    threshold = settings_service.low_attendance_threshold()
    return jsonify({
        "threshold": threshold,
        "students": get_low_attendance(ctx, threshold)
    }), 200
