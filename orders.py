"""
Order placement and order management.

Placing an order is two steps. `OrderAssembler` validates the cart against
the catalog, prices it and decides the payment/order status without writing
anything. `OrderPersister` then reserves stock, inserts the order and inserts
its payment record.

Stock is reserved with a conditional decrement (only if enough stock is left),
so two orders racing for the last units cannot both win. The order and payment
inserts that follow are separate writes: if one of them fails the stock already
reserved is not given back and no rollback happens.
"""

import logging
import random
import time
from typing import List, NamedTuple, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import UserClaims
from config import Settings
from database import create_document, get_documents, serialize_doc, to_object_id, utcnow
from errors import (
    AuthorizationError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from payments import PaymentVerifier, TrustingUpiVerifier, sync_payment_status
from pricing import calculate_totals
from schemas import LineItem, Order, Payment, PlaceOrderRequest

log = logging.getLogger("egrocery.orders")


class AssembledOrder(NamedTuple):
    order: Order
    transaction_id: Optional[str] = None


class PlacedOrder(NamedTuple):
    id: str
    order_number: str
    total: float
    payment_status: str
    order_status: str

    def to_response(self) -> dict:
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "total": self.total,
            "paymentStatus": self.payment_status,
            "orderStatus": self.order_status,
        }


def generate_order_number() -> str:
    # Display label only; two orders in the same millisecond can collide
    return f"ORD{int(time.time() * 1000)}{random.randint(0, 999)}"


class OrderAssembler:
    def __init__(self, db: Database, settings: Settings, verifier: PaymentVerifier = None):
        self.db = db
        self.settings = settings
        self.verifier = verifier or TrustingUpiVerifier()

    def _fetch_product(self, product_id: str) -> dict:
        oid = to_object_id(product_id)
        product = self.db["products"].find_one({"_id": oid}) if oid else None
        if not product or not product.get("is_active", True):
            raise NotFoundError(f"Product {product_id} not found", status_code=400)
        return product

    def assemble(self, user: UserClaims, req: PlaceOrderRequest) -> AssembledOrder:
        if not req.items or req.address is None or req.payment_method is None:
            raise ValidationError("Missing required fields")

        line_items: List[LineItem] = []
        for item in req.items:
            product = self._fetch_product(item.product_id)
            if product.get("stock", 0) < item.quantity:
                raise InsufficientStockError(product.get("name", item.product_id), item.product_id)
            price = float(product.get("price", 0))
            line_items.append(LineItem(
                product_id=item.product_id,
                name=product.get("name", ""),
                price=price,
                quantity=item.quantity,
                unit=product.get("unit"),
                image=product.get("image"),
                total=round(price * item.quantity, 2),
            ))

        totals = calculate_totals(((li.price, li.quantity) for li in line_items), self.settings)

        transaction_id = None
        if req.payment_method == "upi":
            transaction_id = self.verifier.verify(req.payment_details)
            payment_status, order_status = "success", "confirmed"
        elif req.payment_method == "cod":
            payment_status, order_status = "pending", "confirmed"
        else:
            raise ValidationError(f"Unsupported payment method: {req.payment_method}")

        order = Order(
            order_number=generate_order_number(),
            user_id=user.uid,
            user_email=user.email,
            items=line_items,
            subtotal=totals.subtotal,
            delivery_charge=totals.delivery_charge,
            tax=totals.tax,
            total=totals.total,
            address=req.address,
            payment_method=req.payment_method,
            payment_status=payment_status,
            order_status=order_status,
        )
        return AssembledOrder(order=order, transaction_id=transaction_id)


class OrderPersister:
    def __init__(self, db: Database):
        self.db = db

    def _reserve(self, item: LineItem) -> bool:
        updated = self.db["products"].find_one_and_update(
            {"_id": to_object_id(item.product_id), "stock": {"$gte": item.quantity}},
            {"$inc": {"stock": -item.quantity}, "$set": {"updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return updated is not None

    def _release(self, items: List[LineItem]):
        for item in items:
            self.db["products"].update_one(
                {"_id": to_object_id(item.product_id)},
                {"$inc": {"stock": item.quantity}, "$set": {"updated_at": utcnow()}},
            )

    def persist(self, assembled: AssembledOrder) -> PlacedOrder:
        order = assembled.order
        try:
            reserved: List[LineItem] = []
            for item in order.items:
                if not self._reserve(item):
                    self._release(reserved)
                    raise InsufficientStockError(item.name, item.product_id)
                reserved.append(item)

            order_id = create_document(self.db, "orders", order.model_dump())
            payment = Payment(
                order_id=order_id,
                order_number=order.order_number,
                user_id=order.user_id,
                amount=order.total,
                method=order.payment_method,
                status=order.payment_status,
                transaction_id=assembled.transaction_id,
            )
            create_document(self.db, "payments", payment)
        except PyMongoError as e:
            log.exception("Create order error for %s", order.order_number)
            raise PersistenceError("Error creating order") from e

        log.info("Order %s placed (%s, total %.2f)", order.order_number, order_id, order.total)
        return PlacedOrder(
            id=order_id,
            order_number=order.order_number,
            total=order.total,
            payment_status=order.payment_status,
            order_status=order.order_status,
        )


def place_order(
    db: Database,
    settings: Settings,
    user: UserClaims,
    req: PlaceOrderRequest,
    verifier: PaymentVerifier = None,
) -> PlacedOrder:
    assembled = OrderAssembler(db, settings, verifier).assemble(user, req)
    return OrderPersister(db).persist(assembled)


# ----------------------- Queries -----------------------

def list_orders(db: Database, user: UserClaims, is_admin: bool) -> List[dict]:
    filt = {} if is_admin else {"user_id": user.uid}
    docs = get_documents(db, "orders", filt, sort=[("created_at", DESCENDING)])
    return [serialize_doc(d) for d in docs]


def get_order(db: Database, order_id: str, user: UserClaims, is_admin: bool) -> dict:
    """Fetch a stored order visible to `user` (owner or admin)."""
    oid = to_object_id(order_id)
    doc = db["orders"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise NotFoundError("Order not found")
    if doc.get("user_id") != user.uid and not is_admin:
        raise AuthorizationError("Access denied")
    return doc


# ----------------------- Status updates -----------------------

def update_order_status(
    db: Database,
    order_id: str,
    order_status: Optional[str] = None,
    payment_status: Optional[str] = None,
):
    """Set whichever statuses are given. Any status may follow any other."""
    oid = to_object_id(order_id)
    if oid is None:
        raise ValidationError("Invalid id format")

    update = {"updated_at": utcnow()}
    if order_status:
        update["order_status"] = order_status
    if payment_status:
        update["payment_status"] = payment_status

    try:
        db["orders"].update_one({"_id": oid}, {"$set": update})
        if payment_status:
            sync_payment_status(db, order_id, payment_status)
    except PyMongoError as e:
        raise PersistenceError("Error updating order status") from e
    log.info("Order %s status updated: %s", order_id, {k: v for k, v in update.items() if k != "updated_at"})
