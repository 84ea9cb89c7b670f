# catalog_admin/core/exceptions.py

from typing import Dict, Optional


class CategoryTreeError(Exception):
    """Base error for everything the category tree editor raises."""


# --- Tree edits ---


class MoveError(CategoryTreeError):
    pass


class ItemNotFoundError(MoveError):
    def __init__(self, item_id: str, kind: str = "item"):
        self.item_id = item_id
        self.kind = kind
        super().__init__(f"{kind.capitalize()} '{item_id}' not found in tree")


class UnsupportedMoveError(MoveError):
    pass


# --- Admin API ---


class InvalidEndpointError(ValueError):
    pass


class CategoryGatewayError(CategoryTreeError):
    """
    Raised by the gateway when the admin API call did not succeed.
    `message` is safe to show to the admin as is.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class CategoryValidationError(CategoryGatewayError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        field_errors: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message, status_code)
        self.field_errors = field_errors or {}


class CategoryConflictError(CategoryGatewayError):
    pass


class StaleTreeError(CategoryConflictError):
    pass


class GatewayTransportError(CategoryGatewayError):
    pass
