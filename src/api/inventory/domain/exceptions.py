"""Domain exceptions for the inventory bounded context.

None of these are retryable: they describe bad input or missing entities,
and retrying the same request yields the same answer.
"""


class InventoryError(Exception):
    """Base class for inventory domain errors."""

    retryable: bool = False


class NotFoundError(InventoryError):
    """Raised when a referenced entity does not exist in the tenant."""

    entity: str = "Entity"

    def __init__(self, entity_id: str):
        super().__init__(f"{self.entity} with ID {entity_id} not found")
        self.entity_id = entity_id


class ProductNotFoundError(NotFoundError):
    entity = "Product"


class VendorNotFoundError(NotFoundError):
    entity = "Vendor"


class PurchaseNotFoundError(NotFoundError):
    entity = "Purchase"


class SaleNotFoundError(NotFoundError):
    entity = "Sale"


class ValidationError(InventoryError):
    """Raised when input values break a business rule."""

    pass


class InvalidQuantityError(ValidationError):
    """Raised when a line item quantity is not a positive integer."""

    pass


class InvalidPriceError(ValidationError):
    """Raised when a price or amount is negative."""

    pass


class EmptyPurchaseError(ValidationError):
    """Raised when a purchase has no line items."""

    def __init__(self) -> None:
        super().__init__("Purchase must have at least one item")


class EmptySaleError(ValidationError):
    """Raised when a bill has no lines."""

    def __init__(self) -> None:
        super().__init__("Sale must have at least one item")


class InsufficientStockError(ValidationError):
    """Raised when a sale or a stock reversal needs more units than exist."""

    pass


class DuplicateProductError(InventoryError):
    """Raised when a product's SKU or barcode is already in use."""

    pass
