from datetime import datetime, timedelta

from sqlalchemy import select

from ..extensions import db
from ..models import Invoice, Settings


def get_or_create_settings():
    settings = db.session.scalar(select(Settings).order_by(Settings.id).limit(1))
    if settings is None:
        settings = Settings(shop_name="JBookMe", address="", phone="", email="")
        db.session.add(settings)
        db.session.flush()
    return settings


def next_invoice_number(year=None):
    """INV-<year>-NNNN, one past the highest number issued that year."""
    year = year or datetime.now().year
    prefix = f"INV-{year}-"
    last_number = db.session.scalar(
        select(Invoice.invoice_number)
        .where(Invoice.invoice_number.like(f"{prefix}%"))
        .order_by(Invoice.invoice_number.desc())
        .limit(1)
    )

    next_number = 1
    if last_number:
        try:
            next_number = int(last_number.split("-")[2]) + 1
        except (IndexError, ValueError):
            next_number = 1
    return f"{prefix}{next_number:04d}"


def create_invoice_for_completed_appointment(appointment):
    """
    Issue a paid CLIENT_SERVICE invoice for a completed appointment.
    Returns the existing invoice if one was already issued. Caller commits.
    """
    existing = db.session.scalar(
        select(Invoice).where(Invoice.appointment_id == appointment.id)
    )
    if existing is not None:
        return existing

    settings = get_or_create_settings()
    client = appointment.client
    service = appointment.service
    barber_name = appointment.barber.user.name if appointment.barber.user else ""
    now = datetime.now()

    invoice = Invoice(
        invoice_number=next_invoice_number(now.year),
        type="CLIENT_SERVICE",
        status="PAID",
        appointment_id=appointment.id,
        issuer_name=settings.shop_name,
        issuer_address=settings.address or "",
        issuer_phone=settings.phone or "",
        issuer_email=settings.email or "",
        recipient_id=client.id,
        recipient_name=client.name or "Client",
        recipient_email=client.email,
        recipient_phone=client.phone or "",
        amount=service.price,
        description=f"Service: {service.name} - Barber: {barber_name}",
        items=[
            {
                "description": service.name,
                "quantity": 1,
                "price": service.price,
                "total": service.price,
            }
        ],
        issue_date=now,
        due_date=now,
        is_paid=True,
        paid_at=now,
    )
    db.session.add(invoice)
    db.session.flush()
    return invoice


def create_invoice_for_barber_payment(payment):
    settings = get_or_create_settings()
    barber_user = payment.barber.user
    week_label = (
        f"From {payment.week_start.strftime('%m/%d/%Y')} "
        f"to {payment.week_end.strftime('%m/%d/%Y')}"
    )
    is_paid = payment.status == "PAID"

    invoice = Invoice(
        invoice_number=next_invoice_number(),
        type="BARBER_PAYMENT",
        status="PAID" if is_paid else "PENDING",
        barber_payment_id=payment.id,
        issuer_name=settings.shop_name,
        issuer_address=settings.address or "",
        issuer_phone=settings.phone or "",
        issuer_email=settings.email or "",
        recipient_id=barber_user.id,
        recipient_name=barber_user.name or "Unnamed",
        recipient_email=barber_user.email,
        recipient_phone=barber_user.phone or "",
        amount=payment.amount,
        description=f"Weekly payment - {week_label}",
        items=[
            {
                "description": f"Weekly chair rental - {week_label}",
                "quantity": 1,
                "price": payment.amount,
                "total": payment.amount,
            }
        ],
        issue_date=datetime.now(),
        due_date=payment.week_end or datetime.now() + timedelta(days=7),
        is_paid=is_paid,
        paid_at=payment.paid_at,
    )
    db.session.add(invoice)
    db.session.flush()
    return invoice
