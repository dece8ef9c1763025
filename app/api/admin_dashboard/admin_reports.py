# Admin reports: revenue and activity summary plus the Excel export
from collections import defaultdict
from datetime import datetime
from io import BytesIO

import pandas as pd
from flask import Blueprint, current_app, jsonify, request, send_file
from sqlalchemy import func, select

from app.extensions import db
from ...models import Appointment, Review
from ...utils.auth_utils import admin_required, token_required
from ...utils.time_utils import parse_iso_datetime

admin_reports_bp = Blueprint("admin_reports_bp", __name__, url_prefix="/api/admin/reports")


def _date_range():
    start = parse_iso_datetime(request.args.get("start_date"))
    end = parse_iso_datetime(request.args.get("end_date"))
    return start, end


def _appointments_in(start, end):
    query = select(Appointment)
    if start:
        query = query.where(Appointment.date >= start)
    if end:
        query = query.where(Appointment.date <= end)
    return db.session.scalars(query.order_by(Appointment.date.asc())).all()


def revenue_by_barber(appointments):
    """Completed appointment count and service revenue per barber, highest revenue first."""
    totals = defaultdict(lambda: {"appointments": 0, "revenue": 0.0})
    for appointment in appointments:
        if appointment.status != "COMPLETED":
            continue
        name = appointment.barber.user.name if appointment.barber and appointment.barber.user else "Unknown"
        totals[name]["appointments"] += 1
        totals[name]["revenue"] += appointment.service.price if appointment.service else 0
    rows = [
        {"barber": name, "appointments": data["appointments"], "revenue": round(data["revenue"], 2)}
        for name, data in totals.items()
    ]
    return sorted(rows, key=lambda r: r["revenue"], reverse=True)


@admin_reports_bp.route("/summary", methods=["GET"])
@token_required
@admin_required
def get_summary(current_user):
    """Appointment, revenue and review summary; optional start_date / end_date."""
    try:
        start, end = _date_range()
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    try:
        appointments = _appointments_in(start, end)
        by_status = defaultdict(int)
        for appointment in appointments:
            by_status[appointment.status] += 1

        barbers = revenue_by_barber(appointments)
        avg_rating = db.session.scalar(select(func.avg(Review.rating))) or 0
        total_reviews = db.session.scalar(select(func.count(Review.id))) or 0

        total = len(appointments)
        completed = by_status.get("COMPLETED", 0)
        return jsonify({
            "total_appointments": total,
            "appointments_by_status": dict(by_status),
            "completion_rate": round(completed / total * 100, 2) if total else 0.0,
            "total_revenue": round(sum(b["revenue"] for b in barbers), 2),
            "revenue_by_barber": barbers,
            "average_rating": round(float(avg_rating), 2),
            "total_reviews": total_reviews,
        })

    except Exception as e:
        current_app.logger.error(f"Error building report summary: {e}")
        return jsonify({"error": "Failed to build report", "details": str(e)}), 500


@admin_reports_bp.route("/export", methods=["GET"])
@token_required
@admin_required
def export_report(current_user):
    """Excel workbook with Appointments, Revenue by Barber and Reviews sheets."""
    try:
        start, end = _date_range()
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    appointments = _appointments_in(start, end)
    reviews = db.session.scalars(select(Review).order_by(Review.created_at.desc())).all()
    output = BytesIO()

    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        appointment_rows = [
            (
                a.id,
                a.date.strftime("%Y-%m-%d"),
                a.time,
                a.client.name if a.client else "",
                a.barber.user.name if a.barber and a.barber.user else "",
                a.service.name if a.service else "",
                a.service.price if a.service else 0,
                a.status,
            )
            for a in appointments
        ]
        df_appointments = pd.DataFrame(
            appointment_rows,
            columns=["Appointment ID", "Date", "Time", "Client", "Barber", "Service", "Price", "Status"],
        )
        df_appointments.to_excel(writer, sheet_name="Appointments", index=False)

        df_revenue = pd.DataFrame(
            [(r["barber"], r["appointments"], r["revenue"]) for r in revenue_by_barber(appointments)],
            columns=["Barber", "Completed Appointments", "Revenue"],
        )
        df_revenue.to_excel(writer, sheet_name="Revenue by Barber", index=False)

        review_rows = [
            (
                r.id,
                r.created_at.strftime("%Y-%m-%d"),
                r.barber.user.name if r.barber and r.barber.user else "",
                r.client.name if r.client else "",
                r.rating,
                r.comment or "",
            )
            for r in reviews
        ]
        df_reviews = pd.DataFrame(
            review_rows, columns=["Review ID", "Date", "Barber", "Client", "Rating", "Comment"]
        )
        df_reviews.to_excel(writer, sheet_name="Reviews", index=False)

    output.seek(0)
    filename = f"JBookMe_Report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"

    return send_file(
        output,
        as_attachment=True,
        download_name=filename,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
