# Invoices, reusable invoice line items, barber chair payments and the accounting summary
from datetime import datetime, timedelta

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import select

from app.extensions import db
from ...models import INVOICE_TYPES, PAYMENT_STATUSES, Barber, BarberPayment, Expense, Invoice, InvoiceItemTemplate, User
from ...services.accounting_service import accounting_summary
from ...services.appointment_service import get_barber_for_user
from ...services.email_service import email_service
from ...services.invoice_service import create_invoice_for_barber_payment, get_or_create_settings, next_invoice_number
from ...utils.auth_utils import admin_required, is_admin, staff_required, token_required
from ...utils.time_utils import parse_iso_datetime

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api")

INVOICE_STATUSES = ("PENDING", "PAID", "CANCELLED")
EDITABLE_INVOICE_FIELDS = ("recipient_name", "recipient_email", "recipient_phone", "description")


def _normalize_items(items):
    """Keep items with a description and a numeric price; quantity defaults to 1."""
    normalized = []
    for item in items or []:
        if not isinstance(item, dict) or not item.get("description"):
            continue
        try:
            price = float(item.get("price"))
            quantity = int(item.get("quantity") or 1)
        except (TypeError, ValueError):
            continue
        normalized.append({
            "description": item["description"],
            "quantity": quantity,
            "price": price,
            "total": round(price * quantity, 2),
        })
    return normalized


@invoices_bp.route("/invoices", methods=["GET"])
@token_required
def list_invoices(current_user):
    """
    GET /api/invoices?type=&user_id=
    Admins see every invoice (optionally one recipient's); others their own.
    """
    try:
        invoice_type = request.args.get("type")
        if invoice_type and invoice_type not in INVOICE_TYPES:
            return jsonify({"error": "Invalid type. Must be BARBER_PAYMENT or CLIENT_SERVICE"}), 400

        user_id = request.args.get("user_id", type=int)
        if user_id and user_id != current_user.id and not is_admin(current_user.role):
            return jsonify({"error": "Forbidden"}), 403

        query = select(Invoice)
        if not is_admin(current_user.role):
            query = query.where(Invoice.recipient_id == current_user.id)
        elif user_id:
            query = query.where(Invoice.recipient_id == user_id)
        if invoice_type:
            query = query.where(Invoice.type == invoice_type)

        invoices = db.session.scalars(query.order_by(Invoice.issue_date.desc())).all()
        return jsonify([i.to_dict() for i in invoices])

    except Exception as e:
        current_app.logger.error(f"Error fetching invoices: {e}")
        return jsonify({"error": "Failed to fetch invoices", "details": str(e)}), 500


@invoices_bp.route("/invoices", methods=["POST"])
@token_required
@admin_required
def create_invoice(current_user):
    """
    POST /api/invoices
    Input: JSON { type, amount, recipient_id | (recipient_name, recipient_email),
                  description?, items?, due_date? }
    """
    try:
        data = request.get_json(silent=True) or {}
        invoice_type = data.get("type")
        amount = data.get("amount")
        if not invoice_type or not isinstance(amount, (int, float)) or isinstance(amount, bool):
            return jsonify({"error": "Missing required fields (type, amount)"}), 400
        if invoice_type not in INVOICE_TYPES:
            return jsonify({"error": "Invalid type. Must be BARBER_PAYMENT or CLIENT_SERVICE"}), 400

        recipient_id = data.get("recipient_id")
        if recipient_id:
            recipient = db.session.get(User, recipient_id)
            if not recipient:
                return jsonify({"error": "Recipient not found"}), 404
            recipient_name = recipient.name or "Client"
            recipient_email = recipient.email
            recipient_phone = recipient.phone or ""
        else:
            recipient_name = data.get("recipient_name")
            recipient_email = data.get("recipient_email")
            recipient_phone = data.get("recipient_phone") or ""
            if not recipient_name:
                return jsonify({"error": "recipient_id or recipient_name/recipient_email is required"}), 400
            if not recipient_email:
                return jsonify({"error": "recipient_email is required"}), 400

        try:
            due_date = parse_iso_datetime(data.get("due_date")) or datetime.now() + timedelta(days=7)
        except ValueError:
            return jsonify({"error": "Invalid due_date"}), 400

        settings = get_or_create_settings()
        invoice = Invoice(
            invoice_number=next_invoice_number(),
            type=invoice_type,
            status="PENDING",
            issuer_name=settings.shop_name,
            issuer_address=settings.address or "",
            issuer_phone=settings.phone or "",
            issuer_email=settings.email or "",
            recipient_id=recipient_id or None,
            recipient_name=recipient_name,
            recipient_email=recipient_email,
            recipient_phone=recipient_phone,
            amount=float(amount),
            description=data.get("description") or None,
            items=_normalize_items(data.get("items")),
            issue_date=datetime.now(),
            due_date=due_date,
        )
        db.session.add(invoice)
        db.session.commit()

        return jsonify({"invoice": invoice.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating invoice: {e}")
        return jsonify({"error": "Failed to create invoice", "details": str(e)}), 500


def _load_visible_invoice(current_user, invoice_id):
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return None, (jsonify({"error": "Invoice not found"}), 404)
    if not is_admin(current_user.role) and invoice.recipient_id != current_user.id:
        return None, (jsonify({"error": "Forbidden"}), 403)
    return invoice, None


@invoices_bp.route("/invoices/<int:invoice_id>", methods=["GET"])
@token_required
def get_invoice(current_user, invoice_id):
    invoice, error = _load_visible_invoice(current_user, invoice_id)
    if error:
        return error
    return jsonify(invoice.to_dict())


@invoices_bp.route("/invoices/<int:invoice_id>", methods=["PATCH"])
@token_required
@admin_required
def update_invoice(current_user, invoice_id):
    try:
        invoice = db.session.get(Invoice, invoice_id)
        if not invoice:
            return jsonify({"error": "Invoice not found"}), 404

        data = request.get_json(silent=True) or {}
        for field in EDITABLE_INVOICE_FIELDS:
            if field in data:
                setattr(invoice, field, data[field])
        if "amount" in data:
            invoice.amount = float(data["amount"])
        if "items" in data:
            invoice.items = _normalize_items(data["items"])
        if "due_date" in data:
            invoice.due_date = parse_iso_datetime(data["due_date"])

        db.session.commit()
        return jsonify({"invoice": invoice.to_dict()})

    except (TypeError, ValueError):
        db.session.rollback()
        return jsonify({"error": "Invalid amount or due_date"}), 400

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating invoice: {e}")
        return jsonify({"error": "Failed to update invoice", "details": str(e)}), 500


@invoices_bp.route("/invoices/<int:invoice_id>/status", methods=["PATCH"])
@token_required
@admin_required
def update_invoice_status(current_user, invoice_id):
    """
    PATCH /api/invoices/<id>/status
    Input: JSON { status: PENDING | PAID | CANCELLED, paid_at? }
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if status not in INVOICE_STATUSES:
        return jsonify({"error": "Invalid status. Must be PENDING, PAID, or CANCELLED"}), 400

    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return jsonify({"error": "Invoice not found"}), 404

    invoice.status = status
    if status == "PAID":
        invoice.is_paid = True
        try:
            invoice.paid_at = parse_iso_datetime(data.get("paid_at")) or datetime.now()
        except ValueError:
            return jsonify({"error": "Invalid paid_at"}), 400
    else:
        invoice.is_paid = False
        invoice.paid_at = None

    db.session.commit()
    return jsonify({"invoice": invoice.to_dict()})


@invoices_bp.route("/invoices/<int:invoice_id>/send", methods=["POST"])
@token_required
@admin_required
def send_invoice(current_user, invoice_id):
    """Email the invoice to its recipient (or to { email } from the body)."""
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        return jsonify({"error": "Invoice not found"}), 404

    data = request.get_json(silent=True) or {}
    to_email = data.get("email") or invoice.recipient_email
    if not to_email:
        return jsonify({"error": "Invoice has no recipient email"}), 400

    result = email_service.send_invoice(to_email, invoice)
    if not result["success"]:
        current_app.logger.warning(f"[INVOICES] email for {invoice.invoice_number} failed: {result.get('error')}")
        return jsonify({"error": "Failed to send invoice email", "details": result.get("error")}), 502

    return jsonify({"success": True, "message": f"Invoice sent to {to_email}"})


@invoices_bp.route("/invoice-items", methods=["GET"])
@token_required
@admin_required
def list_invoice_items(current_user):
    items = db.session.scalars(
        select(InvoiceItemTemplate).order_by(InvoiceItemTemplate.description.asc())
    ).all()
    return jsonify([i.to_dict() for i in items])


@invoices_bp.route("/invoice-items", methods=["POST"])
@token_required
@admin_required
def create_invoice_item(current_user):
    data = request.get_json(silent=True) or {}
    description = (data.get("description") or "").strip()
    try:
        price = float(data.get("price"))
    except (TypeError, ValueError):
        price = None
    if not description or price is None or price < 0:
        return jsonify({"error": "description and a non-negative price are required"}), 400

    item = InvoiceItemTemplate(description=description, price=price)
    db.session.add(item)
    db.session.commit()
    return jsonify({"item": item.to_dict()}), 201


@invoices_bp.route("/invoice-items", methods=["DELETE"])
@token_required
@admin_required
def delete_invoice_item(current_user):
    """DELETE /api/invoice-items?id=<item_id>"""
    item_id = request.args.get("id", type=int)
    if not item_id:
        return jsonify({"error": "id is required"}), 400

    item = db.session.get(InvoiceItemTemplate, item_id)
    if not item:
        return jsonify({"error": "Item not found"}), 404

    db.session.delete(item)
    db.session.commit()
    return jsonify({"message": "Item deleted"})


@invoices_bp.route("/barber-payments", methods=["GET"])
@token_required
@staff_required
def list_barber_payments(current_user):
    """Admins see all chair payments (optionally ?barber_id=); barbers their own."""
    query = select(BarberPayment)
    if is_admin(current_user.role):
        barber_id = request.args.get("barber_id", type=int)
        if barber_id:
            query = query.where(BarberPayment.barber_id == barber_id)
    else:
        barber = get_barber_for_user(current_user)
        if not barber:
            return jsonify([])
        query = query.where(BarberPayment.barber_id == barber.id)

    payments = db.session.scalars(query.order_by(BarberPayment.week_start.desc())).all()
    return jsonify([p.to_dict() for p in payments])


@invoices_bp.route("/barber-payments", methods=["POST"])
@token_required
@admin_required
def create_barber_payment(current_user):
    """
    POST /api/barber-payments
    Input: JSON { barber_id, amount, week_start, week_end, status?, notes? }
    Records the payment and issues its BARBER_PAYMENT invoice.
    """
    try:
        data = request.get_json(silent=True) or {}
        barber_id = data.get("barber_id")
        if not barber_id or data.get("amount") is None or not data.get("week_start") or not data.get("week_end"):
            return jsonify({"error": "Missing required fields (barber_id, amount, week_start, week_end)"}), 400

        status = data.get("status") or "PENDING"
        if status not in PAYMENT_STATUSES:
            return jsonify({"error": f"status must be one of {', '.join(PAYMENT_STATUSES)}"}), 400

        try:
            amount = float(data["amount"])
            week_start = parse_iso_datetime(data["week_start"])
            week_end = parse_iso_datetime(data["week_end"])
        except (TypeError, ValueError):
            return jsonify({"error": "Invalid amount or dates"}), 400
        if amount <= 0:
            return jsonify({"error": "amount must be greater than 0"}), 400

        barber = db.session.get(Barber, barber_id)
        if not barber:
            return jsonify({"error": "Barber not found"}), 404

        payment = BarberPayment(
            barber_id=barber.id,
            amount=amount,
            week_start=week_start,
            week_end=week_end,
            status=status,
            notes=data.get("notes"),
            paid_at=datetime.now() if status == "PAID" else None,
        )
        db.session.add(payment)
        db.session.flush()
        invoice = create_invoice_for_barber_payment(payment)
        db.session.commit()

        return jsonify({"payment": payment.to_dict(), "invoice": invoice.to_dict()}), 201

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating barber payment: {e}")
        return jsonify({"error": "Failed to create barber payment", "details": str(e)}), 500


@invoices_bp.route("/accounting/summary", methods=["GET"])
@token_required
@admin_required
def get_accounting_summary(current_user):
    """GET /api/accounting/summary?start_date=&end_date="""
    try:
        start = parse_iso_datetime(request.args.get("start_date"))
        end = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    try:
        return jsonify(accounting_summary(start, end))

    except Exception as e:
        current_app.logger.error(f"Error fetching accounting summary: {e}")
        return jsonify({"error": "Failed to fetch accounting summary", "details": str(e)}), 500


@invoices_bp.route("/accounting/expenses", methods=["POST"])
@token_required
@admin_required
def create_expense(current_user):
    """Input: JSON { category, amount, description?, date? }"""
    data = request.get_json(silent=True) or {}
    category = (data.get("category") or "").strip()
    try:
        amount = float(data.get("amount"))
        date = parse_iso_datetime(data.get("date")) or datetime.now()
    except (TypeError, ValueError):
        return jsonify({"error": "Invalid amount or date"}), 400
    if not category or amount <= 0:
        return jsonify({"error": "category and a positive amount are required"}), 400

    expense = Expense(category=category, amount=amount, description=data.get("description"), date=date)
    db.session.add(expense)
    db.session.commit()
    return jsonify({"expense": expense.to_dict()}), 201
