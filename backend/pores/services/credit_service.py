# Overview: Service-layer operations for customer credit; opening debts and applying payments.

"""
Credit Ledger Service

BALANCE RULES:
- remaining_balance = max(0, total_owed - total_paid)
- status is pending until the first payment, then partial, then paid
- a payment larger than the balance is split: the balance is cleared and
  the excess becomes a separate store-credit record for the customer

CONCURRENCY: apply_payment reads the credit FOR UPDATE and writes it under
the version_id optimistic lock. A concurrent writer makes the flush raise
StaleDataError and the whole read-modify-write is retried.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Credit, CreditPayment, Sale, Store
from ..models.credits import CREDIT_STATUS_PAID, CREDIT_STATUS_PARTIAL, CREDIT_STATUS_PENDING
from ..validation import NotFoundError, ValidationError, coerce_int, optional_text
from .auth_service import resolve_worker
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

STORE_CREDIT_SUFFIX = " (Store credit)"


class CreditError(Exception):
    """400-level: the credit operation is not allowed."""


def create_credit(store_id: int, customer_name, total_owed, phone_number=None, sale_id=None) -> Credit:
    customer_name = optional_text(customer_name)
    if not customer_name or total_owed in (None, ""):
        raise ValidationError("Missing required fields")
    total_owed = coerce_int(total_owed, "total_owed", minimum=1)

    if sale_id not in (None, ""):
        sale = db.session.get(Sale, coerce_int(sale_id, "sale_id"))
        if sale is None or sale.store_id != store_id:
            raise NotFoundError("Sale not found")
        sale_id = sale.id
    else:
        sale_id = None

    credit = Credit(
        store_id=store_id,
        sale_id=sale_id,
        customer_name=customer_name,
        phone_number=optional_text(phone_number),
        total_owed=total_owed,
        total_paid=0,
        remaining_balance=total_owed,
        payment_status=CREDIT_STATUS_PENDING,
        is_store_credit=False,
    )
    db.session.add(credit)
    db.session.commit()
    return credit


def list_credits(store_id: int, status: str | None = None) -> list[Credit]:
    q = (
        db.session.query(Credit)
        .options(selectinload(Credit.payments))
        .filter(Credit.store_id == store_id)
    )
    if status:
        q = q.filter(Credit.payment_status == status)
    return q.order_by(Credit.created_at.desc(), Credit.id.desc()).all()


def apply_payment(store_id: int, credit_id: int, amount, worker_id) -> dict:
    """
    Record a customer payment against a credit.

    Returns:
        {payment, credit, store_credit, applied, overpaid}

    Raises:
        ValidationError: amount missing or not positive ("Invalid amount")
        AuthError: worker missing ("Worker verification required") or
                   neither keeper nor a worker of this store ("Invalid worker")
        NotFoundError: credit missing or owned by another store
        CreditError: credit is itself a store-credit record
    """
    try:
        amount = coerce_int(amount, "amount", minimum=1)
    except ValidationError:
        raise ValidationError("Invalid amount") from None

    worker = resolve_worker(store_id, worker_id)
    recorded_by = "worker" if worker is not None else "keeper"
    worker_pk = worker.id if worker is not None else None

    def _apply() -> dict:
        credit = lock_for_update(
            db.session.query(Credit).filter(Credit.id == credit_id)
        ).first()
        if credit is None or credit.store_id != store_id:
            raise NotFoundError("Credit not found")
        if credit.is_store_credit:
            raise CreditError("Payments cannot be recorded against store credit")

        applied = min(amount, credit.remaining_balance)
        overpaid = amount - applied

        payment = CreditPayment(
            credit_id=credit.id,
            amount=applied,
            recorded_by=recorded_by,
            worker_id=worker_pk,
        )
        db.session.add(payment)

        credit.total_paid = credit.total_paid + applied
        balance = credit.total_owed - credit.total_paid
        credit.remaining_balance = max(0, balance)
        credit.payment_status = CREDIT_STATUS_PAID if balance <= 0 else CREDIT_STATUS_PARTIAL

        store_credit = None
        if overpaid > 0:
            store_credit = Credit(
                store_id=credit.store_id,
                sale_id=None,
                customer_name=f"{credit.customer_name}{STORE_CREDIT_SUFFIX}",
                phone_number=credit.phone_number,
                total_owed=0,
                total_paid=overpaid,
                remaining_balance=0,
                payment_status=CREDIT_STATUS_PAID,
                is_store_credit=True,
            )
            db.session.add(store_credit)

        db.session.commit()

        logger.info(
            "Credit payment applied: credit_id=%s applied=%s remaining=%s",
            credit.id, applied, credit.remaining_balance,
        )
        if store_credit is not None:
            logger.info(
                "Overpayment converted to store credit: credit_id=%s store_credit_id=%s amount=%s",
                credit.id, store_credit.id, overpaid,
            )

        return {
            "payment": payment.to_dict(),
            "credit": credit.to_dict(include_payments=True),
            "store_credit": store_credit.to_dict() if store_credit is not None else None,
            "applied": applied,
            "overpaid": overpaid,
        }

    try:
        return run_with_retry(_apply)
    except (NotFoundError, CreditError):
        db.session.rollback()
        raise


def admin_list_credits(page: int, limit: int, payment_status: str | None = None) -> tuple[list[dict], int]:
    q = db.session.query(Credit, Store.business_name).join(Store, Store.id == Credit.store_id)
    if payment_status:
        q = q.filter(Credit.payment_status == payment_status)

    total = q.count()
    rows = (
        q.order_by(Credit.created_at.desc(), Credit.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    items = []
    for credit, store_name in rows:
        data = credit.to_dict(include_payments=True)
        data["store_name"] = store_name
        items.append(data)
    return items, total
