"""Repository for the ShoppingCart aggregate."""

from storefront.cart.cart import CartStatus, ShoppingCart
from storefront.domain import storefront

SCAN_PAGE_SIZE = 100


@storefront.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    """Owner lookups and reference scans on top of the standard CRUD operations."""

    def for_customer(self, customer_id) -> ShoppingCart | None:
        """The live cart of a signed-in shopper, if any."""
        return self._dao.query.filter(customer_id=str(customer_id), status=CartStatus.ACTIVE.value).all().first

    def for_session(self, session_id) -> ShoppingCart | None:
        """The live cart of a guest session, if any."""
        return self._dao.query.filter(session_id=str(session_id), status=CartStatus.ACTIVE.value).all().first

    def active_carts(self):
        """Iterate over every live cart, one page at a time."""
        offset = 0
        while True:
            page = (
                self._dao.query.filter(status=CartStatus.ACTIVE.value)
                .order_by("created_at")
                .limit(SCAN_PAGE_SIZE)
                .offset(offset)
                .all()
            )
            yield from page.items
            if len(page.items) < SCAN_PAGE_SIZE:
                return
            offset += SCAN_PAGE_SIZE

    def holding(self, product_id, variant_ids=None) -> list[ShoppingCart]:
        """Live carts with a line for the product (or for one of `variant_ids`)."""
        return [cart for cart in self.active_carts() if cart.lines_for(product_id, variant_ids)]

    def discard(self, cart: ShoppingCart):
        self._dao.delete(cart)
