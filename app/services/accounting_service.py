from datetime import datetime

import pandas as pd
from sqlalchemy import func, select

from ..extensions import db
from ..models import BarberPayment, Expense, Invoice

TREND_MONTHS = 6


def monthly_totals(rows):
    """
    Sum ``(datetime, amount)`` rows per calendar month.
    Returns ``[{"month": "YYYY-MM", "total": float}]`` in ascending month order.
    """
    if not rows:
        return []
    df = pd.DataFrame(rows, columns=["date", "amount"])
    df["date"] = pd.to_datetime(df["date"])
    grouped = df.groupby(df["date"].dt.strftime("%Y-%m"))["amount"].sum()
    return [{"month": month, "total": round(float(total), 2)} for month, total in grouped.items()]


def months_ago(now, months):
    month_index = now.year * 12 + (now.month - 1) - months
    return now.replace(year=month_index // 12, month=month_index % 12 + 1, day=1,
                       hour=0, minute=0, second=0, microsecond=0)


def _sum(query):
    return float(db.session.scalar(query) or 0)


def accounting_summary(start=None, end=None, now=None):
    """
    Income, pending amounts and expenses for the shop's books.

    Income is paid barber payments plus paid BARBER_PAYMENT invoices,
    optionally limited to ``paid_at`` in [start, end]. Trends cover the
    last six months.
    """
    now = now or datetime.now()

    payments_query = select(func.sum(BarberPayment.amount)).where(BarberPayment.status == "PAID")
    invoices_query = select(func.sum(Invoice.amount)).where(
        Invoice.is_paid.is_(True), Invoice.type == "BARBER_PAYMENT"
    )
    expenses_query = select(func.sum(Expense.amount))
    by_category_query = select(Expense.category, func.sum(Expense.amount)).group_by(Expense.category)
    if start and end:
        payments_query = payments_query.where(BarberPayment.paid_at.between(start, end))
        invoices_query = invoices_query.where(Invoice.paid_at.between(start, end))
        expenses_query = expenses_query.where(Expense.date.between(start, end))
        by_category_query = by_category_query.where(Expense.date.between(start, end))

    barber_payments_income = _sum(payments_query)
    invoices_income = _sum(invoices_query)
    total_income = barber_payments_income + invoices_income

    pending_payments = db.session.execute(
        select(func.count(BarberPayment.id), func.sum(BarberPayment.amount)).where(
            BarberPayment.status.in_(["PENDING", "OVERDUE"])
        )
    ).one()
    pending_invoices = db.session.execute(
        select(func.count(Invoice.id), func.sum(Invoice.amount)).where(
            Invoice.is_paid.is_(False), Invoice.type == "BARBER_PAYMENT"
        )
    ).one()
    pending_payments_amount = float(pending_payments[1] or 0)
    pending_invoices_amount = float(pending_invoices[1] or 0)

    total_expenses = _sum(expenses_query)
    since = months_ago(now, TREND_MONTHS)

    income_rows = db.session.execute(
        select(BarberPayment.paid_at, BarberPayment.amount).where(
            BarberPayment.status == "PAID", BarberPayment.paid_at >= since
        )
    ).all()
    expense_rows = db.session.execute(
        select(Expense.date, Expense.amount).where(Expense.date >= since)
    ).all()

    return {
        "total_income": total_income,
        "total_expenses": total_expenses,
        "balance": total_income - total_expenses,
        "total_pending": pending_payments_amount + pending_invoices_amount,
        "pending_payments_count": pending_payments[0] + pending_invoices[0],
        "barber_payments_income": barber_payments_income,
        "invoices_income": invoices_income,
        "pending_payments_amount": pending_payments_amount,
        "pending_invoices_amount": pending_invoices_amount,
        "expenses_by_category": [
            {"category": category, "total": float(total or 0)}
            for category, total in db.session.execute(by_category_query).all()
        ],
        "monthly_income": monthly_totals([tuple(row) for row in income_rows]),
        "monthly_expenses": monthly_totals([tuple(row) for row in expense_rows]),
    }
