# FILE: coursestore/services/errors.py


class CheckoutError(Exception):
    """Structured checkout failure, rendered as {"message": ...}."""

    status_code = 400
    default_message = "Checkout failed"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(CheckoutError):
    default_message = "No courses provided"


class InvalidUser(CheckoutError):
    default_message = "Invalid user"


class InvalidStudent(CheckoutError):
    default_message = "Invalid student selected"


class ReceiptGenerationExhausted(CheckoutError):
    status_code = 500
    default_message = "Could not allocate a unique receipt number"


class PersistenceConflict(CheckoutError):
    status_code = 409
    default_message = "Conflicting write during checkout"
