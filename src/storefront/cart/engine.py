"""Cart mutation engine: the only write path for carts and cart lines.

Each operation runs one Protean unit of work (read, mutate, commit) while
holding the per-key locks of everything it touches, so concurrent taps on
the same cart are applied one after another and none is lost. Writers in
other processes are caught by aggregate versioning: a stale write raises
ExpectedVersionError and the unit is re-run from a fresh read, a bounded
number of times.
"""

from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain
from sqlalchemy.exc import OperationalError

from storefront.cart.identity import (
    Anonymous,
    Authenticated,
    CartIdentity,
    ResolveCart,
    find_cart,
    identity_from,
)
from storefront.cart.items import AddToCart, AdjustCartQuantity, RemoveFromCart, SetCartQuantity
from storefront.cart.locks import KeyedLocks
from storefront.cart.merge import MergeCarts
from storefront.domain import logger
from storefront.errors import IdentityRequired, TransientFailure
from storefront.settings import mutation_retries

_locks = KeyedLocks()


def cart_key(cart_id) -> str:
    return f"cart:{cart_id}"


def product_key(product_id) -> str:
    return f"product:{product_id}"


def run_serialized(command, *lock_keys):
    """Process `command` synchronously while holding `lock_keys`."""
    attempts = mutation_retries() + 1
    with _locks.hold(*lock_keys):
        for attempt in range(1, attempts + 1):
            try:
                return current_domain.process(command, asynchronous=False)
            except ExpectedVersionError as exc:
                logger.warning(
                    "Concurrent write detected, re-running unit of work",
                    command=command.__class__.__name__,
                    attempt=attempt,
                    attempts=attempts,
                )
                if attempt == attempts:
                    raise TransientFailure(
                        {"store": ["The cart changed concurrently; please retry"]},
                    ) from exc
            except OperationalError as exc:
                logger.error("Store unavailable", command=command.__class__.__name__, error=str(exc))
                raise TransientFailure({"store": ["The store is temporarily unavailable"]}) from exc


# ---------------------------------------------------------------------------
# Identity resolution
# ---------------------------------------------------------------------------
def resolve_cart(identity: CartIdentity) -> str:
    """Id of the live cart for `identity`, created on first use."""
    if isinstance(identity, Authenticated):
        command = ResolveCart(customer_id=identity.user_id)
    elif isinstance(identity, Anonymous):
        command = ResolveCart(session_id=identity.session_token)
    else:
        raise IdentityRequired({"identity": ["A session token or a signed-in user is required"]})
    return run_serialized(command, identity.key)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def add_item(cart_id, product_id, variant_id=None, quantity=1) -> dict:
    """Add a line; holds the product lock so a matrix save cannot drop the variant mid-add."""
    command = AddToCart(cart_id=cart_id, product_id=product_id, variant_id=variant_id, quantity=quantity)
    return run_serialized(command, cart_key(cart_id), product_key(product_id))


def adjust_quantity(cart_id, item_id, delta) -> int:
    """Apply a relative change and return the authoritative quantity."""
    command = AdjustCartQuantity(cart_id=cart_id, item_id=item_id, delta=delta)
    return run_serialized(command, cart_key(cart_id))


def set_quantity(cart_id, item_id, quantity) -> int:
    command = SetCartQuantity(cart_id=cart_id, item_id=item_id, quantity=quantity)
    return run_serialized(command, cart_key(cart_id))


def remove_item(cart_id, item_id) -> bool:
    """Remove a line; an already-absent line is not an error."""
    command = RemoveFromCart(cart_id=cart_id, item_id=item_id)
    return run_serialized(command, cart_key(cart_id))


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------
def merge_carts(user_id, session_token) -> dict:
    """Fold the guest cart of `session_token` into the cart of `user_id`, once."""
    user = identity_from(user_id=user_id)
    guest = Anonymous(session_token) if session_token and str(session_token).strip() else None
    if guest is None:
        raise IdentityRequired({"session_token": ["Merging needs the guest session token"]})

    user_cart_id = resolve_cart(user)
    guest_cart = find_cart(guest)
    keys = [guest.key, cart_key(user_cart_id)]
    if guest_cart is not None:
        keys.append(cart_key(guest_cart.id))
        keys.extend(product_key(item.product_id) for item in guest_cart.items)

    command = MergeCarts(session_id=guest.session_token, customer_id=user.user_id)
    return run_serialized(command, *keys)
