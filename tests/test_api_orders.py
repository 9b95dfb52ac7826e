import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

import catalog
from database import to_object_id
from main import create_app


def _place(client, headers, product_id, address, quantity=1, **extra):
    body = {"items": [{"productId": product_id, "quantity": quantity}], "address": address,
            "paymentMethod": "cod", **extra}
    return client.post("/orders", json=body, headers=headers)


def test_place_order_returns_created_summary(client, customer, auth_headers, add_product, address):
    pid = add_product(price=100.0, stock=3)
    resp = _place(client, auth_headers(customer), pid, address, quantity=2)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    order = body["order"]
    assert set(order) == {"id", "orderNumber", "total", "paymentStatus", "orderStatus"}
    assert order["total"] == 250.0
    assert order["paymentStatus"] == "pending"
    assert order["orderStatus"] == "confirmed"


def test_place_order_requires_token(client, add_product, address):
    pid = add_product()
    resp = _place(client, {}, pid, address)
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "No authentication token provided"}


def test_place_order_rejects_bad_token(client, add_product, address):
    pid = add_product()
    resp = _place(client, {"Authorization": "Bearer garbage"}, pid, address)
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_expired_token_is_rejected(client, customer, settings, add_product, address):
    import jwt

    token = jwt.encode({"uid": customer.uid, "exp": 1}, settings.jwt_secret, algorithm="HS256")
    resp = _place(client, {"Authorization": f"Bearer {token}"}, add_product(), address)
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token expired"


def test_unknown_payment_method_is_400(client, customer, auth_headers, add_product, address):
    pid = add_product()
    resp = _place(client, auth_headers(customer), pid, address, paymentMethod="card")
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "paymentMethod" in body["message"]


def test_stock_and_payment_failures_are_400(client, customer, auth_headers, add_product, address):
    headers = auth_headers(customer)
    pid = add_product(stock=1)

    resp = _place(client, headers, pid, address, quantity=2)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Insufficient stock for Fresh Apples."

    resp = _place(client, headers, pid, address, paymentMethod="upi")
    assert resp.status_code == 400
    assert resp.json()["message"] == "UPI payment verification failed."

    resp = _place(client, headers, str(ObjectId()), address)
    assert resp.status_code == 400
    assert "not found" in resp.json()["message"]

    resp = client.post("/orders", json={"items": [], "paymentMethod": "cod"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Missing required fields"


def test_list_orders_for_customer_and_admin(client, customer, other_customer, admin, auth_headers, add_product, address):
    pid = add_product(stock=10)
    _place(client, auth_headers(customer), pid, address)
    _place(client, auth_headers(other_customer), pid, address)

    mine = client.get("/orders", headers=auth_headers(customer)).json()["orders"]
    assert [o["userId"] for o in mine] == ["alice"]
    assert mine[0]["items"][0]["productId"] == pid

    everything = client.get("/orders", headers=auth_headers(admin)).json()["orders"]
    assert {o["userId"] for o in everything} == {"alice", "bob"}


def test_order_detail_access_rules(client, customer, other_customer, admin, auth_headers, add_product, address):
    order_id = _place(client, auth_headers(customer), add_product(), address).json()["order"]["id"]

    resp = client.get(f"/orders/{order_id}", headers=auth_headers(customer))
    assert resp.status_code == 200
    assert resp.json()["order"]["id"] == order_id
    assert resp.json()["order"]["paymentMethod"] == "cod"

    resp = client.get(f"/orders/{order_id}", headers=auth_headers(other_customer))
    assert resp.status_code == 403
    assert resp.json() == {"success": False, "message": "Access denied"}

    assert client.get(f"/orders/{order_id}", headers=auth_headers(admin)).status_code == 200
    assert client.get(f"/orders/{ObjectId()}", headers=auth_headers(customer)).status_code == 404


def test_status_update_is_admin_only(client, db, customer, admin, auth_headers, add_product, address):
    order_id = _place(client, auth_headers(customer), add_product(), address).json()["order"]["id"]

    resp = client.put(f"/orders/{order_id}/status", json={"orderStatus": "shipped"}, headers=auth_headers(customer))
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required"

    resp = client.put(
        f"/orders/{order_id}/status",
        json={"orderStatus": "delivered", "paymentStatus": "success"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    order = db["orders"].find_one({"_id": to_object_id(order_id)})
    assert (order["order_status"], order["payment_status"]) == ("delivered", "success")
    assert db["payments"].find_one({"order_id": order_id})["status"] == "success"


def test_status_update_on_missing_order_still_succeeds(client, admin, auth_headers):
    resp = client.put(f"/orders/{ObjectId()}/status", json={"orderStatus": "shipped"}, headers=auth_headers(admin))
    assert resp.status_code == 200


def test_status_update_rejects_unknown_status(client, admin, auth_headers):
    resp = client.put(f"/orders/{ObjectId()}/status", json={"orderStatus": "lost"}, headers=auth_headers(admin))
    assert resp.status_code == 400


def test_invoice_is_derived_from_order(client, customer, other_customer, auth_headers, add_product, address):
    order = _place(client, auth_headers(customer), add_product(price=60.0), address, quantity=3).json()["order"]

    resp = client.get(f"/orders/{order['id']}/invoice", headers=auth_headers(customer))
    assert resp.status_code == 200
    invoice = resp.json()["invoice"]
    assert invoice["invoiceNumber"] == f"INV-{order['orderNumber']}"
    assert invoice["subtotal"] == 180.0
    assert invoice["deliveryCharge"] == 40
    assert invoice["tax"] == 9.0
    assert invoice["total"] == order["total"] == 229.0
    assert invoice["customer"]["email"] == "alice@example.com"
    assert invoice["customer"]["address"]["city"] == "Chennai"
    assert invoice["company"]["name"] == "E-Grocery Store"

    resp = client.get(f"/orders/{order['id']}/invoice", headers=auth_headers(other_customer))
    assert resp.status_code == 403


def _fail_inserts_into(monkeypatch, collection_name):
    original = mongomock.collection.Collection.insert_one

    def insert_one(self, document, *args, **kwargs):
        if self.name == collection_name:
            raise PyMongoError("disk full")
        return original(self, document, *args, **kwargs)

    monkeypatch.setattr(mongomock.collection.Collection, "insert_one", insert_one)


def test_failed_order_insert_keeps_stock_reserved(client, db, monkeypatch, customer, auth_headers, add_product, address):
    pid = add_product(stock=5)
    _fail_inserts_into(monkeypatch, "orders")

    resp = _place(client, auth_headers(customer), pid, address, quantity=2)

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Error creating order"}
    # No compensation: the reserved units are not returned
    assert db["products"].find_one({"_id": to_object_id(pid)})["stock"] == 3
    assert db["payments"].count_documents({}) == 0


def test_failed_payment_insert_leaves_order_behind(client, db, monkeypatch, customer, auth_headers, add_product, address):
    pid = add_product(stock=5)
    _fail_inserts_into(monkeypatch, "payments")

    resp = _place(client, auth_headers(customer), pid, address, quantity=2)

    assert resp.status_code == 500
    assert resp.json()["message"] == "Error creating order"
    assert db["orders"].count_documents({}) == 1
    assert db["products"].find_one({"_id": to_object_id(pid)})["stock"] == 3


@pytest.mark.parametrize("error, message", [
    (PyMongoError("connection reset by 10.0.0.7"), "Database error"),
    (RuntimeError("secret internals"), "Internal server error"),
])
def test_unexpected_errors_hide_details(db, settings, monkeypatch, error, message):
    def explode(*args, **kwargs):
        raise error

    monkeypatch.setattr(catalog, "list_products", explode)
    client = TestClient(create_app(db=db, settings=settings), raise_server_exceptions=False)

    resp = client.get("/products")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": message}
    assert "Traceback" not in resp.text
    assert str(error) not in resp.text
