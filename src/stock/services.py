"""Inventory guard: locked stock decrement/restore on the product row.

Every function re-reads the product with ``select_for_update()`` so the
availability check and the write happen under the same row lock.  Callers
that touch several products lock them up front with :func:`lock_products`
so concurrent settlements and reversals always acquire locks in the same
(primary key) order.
"""
import logging
import uuid

from django.db import transaction

from catalog.models import Product
from core.exceptions import InsufficientStockError, NotFoundError, OrderValidationError

from .models import InventoryMovement

logger = logging.getLogger("xmall")


def lock_products(product_ids) -> dict:
    """Lock the given product rows in primary-key order and return them by pk.

    Must be called inside a transaction.  Raises ``NotFoundError`` naming
    the first unknown product id.
    """
    wanted = []
    for pk in sorted({str(pk) for pk in product_ids}):
        try:
            wanted.append(str(uuid.UUID(pk)))
        except ValueError:
            raise NotFoundError(f"Product not found: {pk}")
    products = {
        str(product.pk): product
        for product in Product.objects.select_for_update().filter(pk__in=wanted).order_by("pk")
    }
    for pk in wanted:
        if pk not in products:
            raise NotFoundError(f"Product not found: {pk}")
    return products


@transaction.atomic
def decrement_stock(product, qty, reference="", actor=None) -> InventoryMovement:
    """
    Take *qty* units of *product* out of stock for a sale.

    Args:
        product: The Product instance (or anything with its pk).
        qty: Positive integer quantity.
        reference: Order number recorded on the movement.
        actor: The User performing the action.

    Raises:
        OrderValidationError: If the product is inactive or qty is not positive.
        InsufficientStockError: If fewer than *qty* units are in stock.
    """
    if qty <= 0:
        raise OrderValidationError("Quantity must be at least 1.")

    locked = Product.objects.select_for_update().get(pk=product.pk)

    if not locked.is_active:
        raise OrderValidationError(f"Product '{locked.name}' is not available for sale.")
    if locked.stock_quantity < qty:
        raise InsufficientStockError(locked.name, locked.stock_quantity, qty)

    locked.stock_quantity -= qty
    locked.save(update_fields=["stock_quantity", "updated_at"])

    movement = InventoryMovement.objects.create(
        product=locked,
        movement_type=InventoryMovement.MovementType.SALE,
        quantity=-qty,
        quantity_after=locked.stock_quantity,
        reference=reference,
        actor=actor,
    )

    logger.info(
        "Stock decremented: %s -%d (now %d) by %s (ref=%s)",
        locked.sku, qty, locked.stock_quantity, actor, reference,
    )
    return movement


@transaction.atomic
def restore_stock(product, qty, reference="", reason="", actor=None) -> InventoryMovement:
    """
    Put *qty* units of *product* back into stock after a cancellation or refund.

    Restores unconditionally, including for products deactivated since the
    original sale.
    """
    if qty <= 0:
        raise OrderValidationError("Quantity must be at least 1.")

    locked = Product.objects.select_for_update().get(pk=product.pk)
    locked.stock_quantity += qty
    locked.save(update_fields=["stock_quantity", "updated_at"])

    movement = InventoryMovement.objects.create(
        product=locked,
        movement_type=InventoryMovement.MovementType.RETURN,
        quantity=qty,
        quantity_after=locked.stock_quantity,
        reference=reference,
        reason=reason,
        actor=actor,
    )

    logger.info(
        "Stock restored: %s +%d (now %d) by %s (ref=%s)",
        locked.sku, qty, locked.stock_quantity, actor, reference,
    )
    return movement
