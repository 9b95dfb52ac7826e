"""
Admin dashboard counters.
"""

from pymongo.database import Database

from catalog import is_low_stock
from config import Settings
from pricing import format_amount


def dashboard(db: Database, settings: Settings) -> dict:
    total_orders = 0
    total_revenue = 0.0
    pending_orders = 0
    completed_orders = 0
    for o in db["orders"].find({}, {"total": 1, "payment_status": 1, "order_status": 1}):
        total_orders += 1
        if o.get("payment_status") == "success":
            total_revenue += o.get("total", 0)
        if o.get("order_status") in ("pending", "confirmed"):
            pending_orders += 1
        if o.get("order_status") == "delivered":
            completed_orders += 1

    products = list(db["products"].find({"is_active": True}))
    return {
        "totalOrders": total_orders,
        "totalRevenue": format_amount(total_revenue),
        "pendingOrders": pending_orders,
        "completedOrders": completed_orders,
        "totalProducts": len(products),
        "lowStockCount": sum(1 for p in products if is_low_stock(p, settings)),
        "totalUsers": db["users"].count_documents({}),
    }
