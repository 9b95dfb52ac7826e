import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import IdentityGate, UserClaims
from config import Settings
from database import create_document
from main import create_app
from schemas import Product


@pytest.fixture
def settings():
    return Settings(jwt_secret="test-secret", log_level="WARNING")


@pytest.fixture
def db():
    return mongomock.MongoClient()["egrocery_test"]


@pytest.fixture
def gate(db, settings):
    return IdentityGate(db, settings)


@pytest.fixture
def client(db, settings):
    return TestClient(create_app(db=db, settings=settings))


def _add_user(db, uid, email, role):
    db["users"].insert_one({"_id": uid, "uid": uid, "email": email, "name": uid.title(), "phone": "", "role": role})
    return UserClaims(uid=uid, email=email)


@pytest.fixture
def customer(db):
    return _add_user(db, "alice", "alice@example.com", "customer")


@pytest.fixture
def other_customer(db):
    return _add_user(db, "bob", "bob@example.com", "customer")


@pytest.fixture
def admin(db):
    return _add_user(db, "admin", "admin@egrocery.com", "admin")


@pytest.fixture
def auth_headers(gate):
    def make(user: UserClaims):
        return {"Authorization": f"Bearer {gate.issue_token(user.uid, user.email)}"}
    return make


@pytest.fixture
def add_product(db):
    def make(name="Fresh Apples", price=120.0, stock=10, **extra):
        fields = {"category": "fruits", "unit": "kg", **extra}
        return create_document(db, "products", Product(name=name, price=price, stock=stock, **fields))
    return make


@pytest.fixture
def address():
    return {"name": "Alice", "phone": "9876543210", "line1": "12 Lake Road", "city": "Chennai", "pincode": "600001"}
