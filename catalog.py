"""
Product catalog: listing, admin edits, soft delete and low-stock reporting.
"""

import logging
import re
from typing import List, Optional

from pymongo.database import Database

from config import Settings
from database import create_document, get_documents, serialize_doc, to_object_id, utcnow
from errors import NotFoundError, ValidationError
from schemas import Product, ProductCreate, ProductUpdate

log = logging.getLogger("egrocery.catalog")

CATEGORIES = [
    {"id": "fruits", "name": "Fruits", "icon": "🍎"},
    {"id": "vegetables", "name": "Vegetables", "icon": "🥬"},
    {"id": "dairy", "name": "Dairy", "icon": "🥛"},
    {"id": "bakery", "name": "Bakery", "icon": "🍞"},
    {"id": "beverages", "name": "Beverages", "icon": "🧃"},
    {"id": "snacks", "name": "Snacks", "icon": "🍪"},
    {"id": "grains", "name": "Grains & Pulses", "icon": "🌾"},
    {"id": "meat", "name": "Meat & Seafood", "icon": "🍖"},
    {"id": "frozen", "name": "Frozen Foods", "icon": "🧊"},
    {"id": "household", "name": "Household", "icon": "🧹"},
]


def list_products(
    db: Database,
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
) -> List[dict]:
    filt = {"is_active": True}
    if category and category != "all":
        filt["category"] = category
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        filt["$or"] = [{"name": pattern}, {"description": pattern}]
    return [serialize_doc(p) for p in get_documents(db, "products", filt, limit=limit)]


def get_product(db: Database, product_id: str) -> dict:
    oid = to_object_id(product_id)
    product = db["products"].find_one({"_id": oid}) if oid else None
    if not product:
        raise NotFoundError("Product not found")
    return serialize_doc(product)


def create_product(db: Database, body: ProductCreate) -> dict:
    product = Product(**body.model_dump(), is_active=True)
    pid = create_document(db, "products", product)
    log.info("Product created: %s (%s)", product.name, pid)
    return serialize_doc({"_id": pid, **product.model_dump()})


def _oid_or_400(product_id: str):
    oid = to_object_id(product_id)
    if oid is None:
        raise ValidationError("Invalid id format")
    return oid


def update_product(db: Database, product_id: str, body: ProductUpdate):
    update = body.model_dump(exclude_none=True)
    update["updated_at"] = utcnow()
    res = db["products"].update_one({"_id": _oid_or_400(product_id)}, {"$set": update})
    if res.matched_count == 0:
        raise NotFoundError("Product not found")


def deactivate_product(db: Database, product_id: str):
    """Soft delete: the record stays so past orders can still reference it."""
    res = db["products"].update_one(
        {"_id": _oid_or_400(product_id)},
        {"$set": {"is_active": False, "updated_at": utcnow()}},
    )
    if res.matched_count == 0:
        raise NotFoundError("Product not found")
    log.info("Product %s deactivated", product_id)


def is_low_stock(product: dict, settings: Settings) -> bool:
    threshold = product.get("low_stock_threshold") or settings.default_low_stock_threshold
    return product.get("stock", 0) <= threshold


def low_stock_products(db: Database, settings: Settings) -> List[dict]:
    products = get_documents(db, "products", {"is_active": True})
    return [serialize_doc(p) for p in products if is_low_stock(p, settings)]


# ----------------------- Seed Demo Data -----------------------

DEMO_PRODUCTS = [
    {"name": "Fresh Apples", "description": "Crisp and juicy red apples", "price": 120, "category": "fruits", "stock": 100, "unit": "kg", "image": "https://images.unsplash.com/photo-1560806887-1e4cd0b6cbd6?w=300", "low_stock_threshold": 10},
    {"name": "Bananas", "description": "Ripe yellow bananas", "price": 40, "category": "fruits", "stock": 150, "unit": "dozen", "image": "https://images.unsplash.com/photo-1571771894821-ce9b6c11b08e?w=300", "low_stock_threshold": 15},
    {"name": "Oranges", "description": "Sweet and tangy oranges", "price": 80, "category": "fruits", "stock": 80, "unit": "kg", "image": "https://images.unsplash.com/photo-1547514701-42782101795e?w=300", "low_stock_threshold": 10},
    {"name": "Fresh Tomatoes", "description": "Ripe red tomatoes", "price": 30, "category": "vegetables", "stock": 200, "unit": "kg", "image": "https://images.unsplash.com/photo-1546470427-227c7a4beea2?w=300", "low_stock_threshold": 20},
    {"name": "Onions", "description": "Fresh red onions", "price": 25, "category": "vegetables", "stock": 250, "unit": "kg", "image": "https://images.unsplash.com/photo-1618512496248-a07fe83aa8cb?w=300", "low_stock_threshold": 25},
    {"name": "Carrots", "description": "Sweet and crunchy carrots", "price": 45, "category": "vegetables", "stock": 120, "unit": "kg", "image": "https://images.unsplash.com/photo-1598170845058-32b9d6a5da37?w=300", "low_stock_threshold": 15},
    {"name": "Fresh Milk", "description": "Pasteurized whole milk", "price": 60, "category": "dairy", "stock": 100, "unit": "litre", "image": "https://images.unsplash.com/photo-1563636619-e9143da7973b?w=300", "low_stock_threshold": 20},
    {"name": "Paneer", "description": "Fresh cottage cheese", "price": 90, "category": "dairy", "stock": 50, "unit": "200g", "image": "https://images.unsplash.com/photo-1631452180519-c014fe946bc7?w=300", "low_stock_threshold": 5},
    {"name": "Bread Loaf", "description": "Soft whole wheat bread", "price": 45, "category": "bakery", "stock": 50, "unit": "pcs", "image": "https://images.unsplash.com/photo-1509440159596-0249088772ff?w=300", "low_stock_threshold": 5},
    {"name": "Green Tea", "description": "Premium green tea bags", "price": 150, "category": "beverages", "stock": 45, "unit": "25bags", "image": "https://images.unsplash.com/photo-1556679343-c7306c1976bc?w=300", "low_stock_threshold": 5},
    {"name": "Mixed Nuts", "description": "Premium mixed nuts", "price": 250, "category": "snacks", "stock": 30, "unit": "250g", "image": "https://images.unsplash.com/photo-1599599810769-bcde5a160d32?w=300", "low_stock_threshold": 5},
    {"name": "Basmati Rice", "description": "Premium aged basmati", "price": 180, "category": "grains", "stock": 80, "unit": "kg", "image": "https://images.unsplash.com/photo-1586201375761-83865001e31c?w=300", "low_stock_threshold": 10},
]


def seed_products(db: Database) -> int:
    for p in DEMO_PRODUCTS:
        create_document(db, "products", Product(**p))
    log.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)
