"""
Payment records and the UPI placeholder flow.

No payment gateway is called anywhere. A UPI order is accepted when the client
supplies a transaction id; `TrustingUpiVerifier` is the single place that
makes this decision, so a real verifier can replace it without touching orders.
"""

import logging
import random
import time
from typing import List, Optional
from urllib.parse import quote

from pymongo import DESCENDING
from pymongo.database import Database

from config import Settings
from database import get_documents, serialize_doc, utcnow
from errors import PaymentVerificationError
from schemas import PaymentDetails

log = logging.getLogger("egrocery.payments")


class PaymentVerifier:
    """Decides whether a UPI payment can be treated as completed."""

    def verify(self, details: Optional[PaymentDetails]) -> str:
        """Return the accepted transaction id or raise PaymentVerificationError."""
        raise NotImplementedError


class TrustingUpiVerifier(PaymentVerifier):
    """Demo verifier: any non-empty client-supplied transaction id is accepted."""

    def verify(self, details: Optional[PaymentDetails]) -> str:
        if details is None or not details.transaction_id:
            raise PaymentVerificationError("UPI payment verification failed.")
        return details.transaction_id


def new_transaction_id() -> str:
    return f"TXN{int(time.time() * 1000)}{random.randint(0, 9999)}"


def initiate_upi_payment(amount: float, settings: Settings) -> dict:
    transaction_id = new_transaction_id()
    upi_link = (
        f"upi://pay?pa={settings.upi_id}&pn={quote(settings.store_name)}"
        f"&am={amount}&tr={transaction_id}&tn=Order%20Payment"
    )
    return {
        "transactionId": transaction_id,
        "upiId": settings.upi_id,
        "upiLink": upi_link,
        "amount": amount,
        "qrData": upi_link,
    }


def sync_payment_status(db: Database, order_id: str, status: str) -> int:
    """Copy an order's payment status onto its payment records.

    Matching no record is not an error.
    """
    result = db["payments"].update_many(
        {"order_id": order_id}, {"$set": {"status": status, "updated_at": utcnow()}}
    )
    if result.matched_count == 0:
        log.warning("No payment record found for order %s", order_id)
    return result.modified_count


def list_payments(db: Database) -> List[dict]:
    docs = get_documents(db, "payments", sort=[("created_at", DESCENDING)])
    return [serialize_doc(d) for d in docs]
