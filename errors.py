"""
Error taxonomy. Every failure the service reports to a client is one of these;
the app turns them into a `{success: false, message}` envelope.
"""


class GroceryError(Exception):
    """Base exception for this application."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GroceryError):
    status_code = 400


class NotFoundError(GroceryError):
    # Some call sites report a missing record as 400 instead
    status_code = 404


class AuthenticationError(GroceryError):
    status_code = 401


class AuthorizationError(GroceryError):
    status_code = 403


class InsufficientStockError(GroceryError):
    status_code = 400

    def __init__(self, product_name: str, product_id: str = None):
        super().__init__(f"Insufficient stock for {product_name}.")
        self.product_name = product_name
        self.product_id = product_id


class PaymentVerificationError(GroceryError):
    status_code = 400


class PersistenceError(GroceryError):
    status_code = 500
