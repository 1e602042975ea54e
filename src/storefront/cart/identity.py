"""Cart identity resolution: which cart a request is talking about.

A request carries an anonymous session token, an authenticated user id, or
both. The signed-in identity wins; the session token then only matters to
the one-time merge.
"""

from dataclasses import dataclass

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.domain import logger, storefront
from storefront.errors import IdentityRequired


@dataclass(frozen=True)
class Anonymous:
    session_token: str

    @property
    def key(self) -> str:
        return f"session:{self.session_token}"


@dataclass(frozen=True)
class Authenticated:
    user_id: str

    @property
    def key(self) -> str:
        return f"customer:{self.user_id}"


CartIdentity = Anonymous | Authenticated


def _clean(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def identity_from(user_id=None, session_token=None) -> CartIdentity:
    """Build the cart identity for a request, preferring the signed-in user."""
    user_id, session_token = _clean(user_id), _clean(session_token)
    if user_id:
        return Authenticated(user_id)
    if session_token:
        return Anonymous(session_token)
    raise IdentityRequired({"identity": ["A session token or a signed-in user is required"]})


def find_cart(identity: CartIdentity) -> ShoppingCart | None:
    repo = current_domain.repository_for(ShoppingCart)
    if isinstance(identity, Authenticated):
        return repo.for_customer(identity.user_id)
    return repo.for_session(identity.session_token)


@storefront.command(part_of="ShoppingCart")
class ResolveCart:
    """Find the live cart for an identity, creating it on first use."""

    customer_id = Identifier()
    session_id = String(max_length=255)


@storefront.command_handler(part_of=ShoppingCart)
class ResolveCartHandler:
    @handle(ResolveCart)
    def resolve_cart(self, command):
        identity = identity_from(command.customer_id, command.session_id)
        cart = find_cart(identity)
        if cart is not None:
            return str(cart.id)

        if isinstance(identity, Authenticated):
            cart = ShoppingCart.create(customer_id=identity.user_id)
        else:
            cart = ShoppingCart.create(session_id=identity.session_token)
        current_domain.repository_for(ShoppingCart).add(cart)

        logger.info("Cart created", cart_id=str(cart.id), owner=identity.key)
        return str(cart.id)
