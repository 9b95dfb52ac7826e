"""
Invoice view derived from a stored order. Invoices are not persisted.
"""

from datetime import datetime

from config import Settings
from database import serialize_doc, utcnow


def build_invoice(order: dict, settings: Settings) -> dict:
    data = serialize_doc(order)
    created = order.get("created_at")
    date = created.isoformat() if isinstance(created, datetime) else utcnow().isoformat()
    return {
        "invoiceNumber": f"INV-{data['orderNumber']}",
        "orderNumber": data["orderNumber"],
        "date": date,
        "customer": {"email": data.get("userEmail"), "address": data.get("address")},
        "items": data.get("items", []),
        "subtotal": data.get("subtotal"),
        "deliveryCharge": data.get("deliveryCharge"),
        "tax": data.get("tax"),
        "total": data.get("total"),
        "paymentMethod": data.get("paymentMethod"),
        "paymentStatus": data.get("paymentStatus"),
        "company": {
            "name": settings.store_name,
            "address": settings.store_address,
            "phone": settings.store_phone,
            "email": settings.store_email,
            "gstin": settings.store_gstin,
        },
    }
