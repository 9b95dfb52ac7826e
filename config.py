"""
Application configuration, loaded once at startup and passed to the app.
"""

import logging
import os
import sys
from typing import List

from pydantic import BaseModel, Field

log = logging.getLogger("egrocery")


class Settings(BaseModel):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "egrocery"

    jwt_secret: str = "devsecret"
    jwt_algorithm: str = "HS256"
    jwt_expiry_days: int = 7

    # Pricing
    free_delivery_threshold: float = 500
    delivery_charge: float = 40
    tax_rate: float = 0.05

    default_low_stock_threshold: int = 10

    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )
    log_level: str = "INFO"

    # Store details shown on invoices and UPI links
    store_name: str = "E-Grocery Store"
    store_address: str = "123 Market Street, City - 600001"
    store_phone: str = "+91 9876543210"
    store_email: str = "support@egrocery.com"
    store_gstin: str = "GSTIN1234567890"
    upi_id: str = "egrocery@upi"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            database_name=os.getenv("DATABASE_NAME", defaults.database_name),
            jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
            jwt_expiry_days=int(os.getenv("JWT_EXPIRY_DAYS", defaults.jwt_expiry_days)),
            free_delivery_threshold=float(
                os.getenv("FREE_DELIVERY_THRESHOLD", defaults.free_delivery_threshold)
            ),
            delivery_charge=float(os.getenv("DELIVERY_CHARGE", defaults.delivery_charge)),
            tax_rate=float(os.getenv("TAX_RATE", defaults.tax_rate)),
            default_low_stock_threshold=int(
                os.getenv("DEFAULT_LOW_STOCK_THRESHOLD", defaults.default_low_stock_threshold)
            ),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()]
            if origins
            else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            store_name=os.getenv("STORE_NAME", defaults.store_name),
            store_address=os.getenv("STORE_ADDRESS", defaults.store_address),
            store_phone=os.getenv("STORE_PHONE", defaults.store_phone),
            store_email=os.getenv("STORE_EMAIL", defaults.store_email),
            store_gstin=os.getenv("STORE_GSTIN", defaults.store_gstin),
            upi_id=os.getenv("UPI_ID", defaults.upi_id),
        )


def setup_logging(level: str = "INFO"):
    """Configure the application logger. Safe to call more than once."""
    log.setLevel(level.upper())
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - [%(levelname)-7s] - %(message)s")
        )
        log.addHandler(handler)
    log.debug("Logging configured at %s", level.upper())
