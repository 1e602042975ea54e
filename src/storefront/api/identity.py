"""Request identity dependencies.

The identity provider is an upstream collaborator: by the time a request
reaches this service it carries the signed-in user id and/or the guest
session token as headers.
"""

from fastapi import Header

from storefront.cart.identity import CartIdentity, identity_from


def request_identity(
    x_user_id: str | None = Header(default=None),
    x_session_token: str | None = Header(default=None),
) -> CartIdentity:
    return identity_from(user_id=x_user_id, session_token=x_session_token)


def merge_identity(
    x_user_id: str | None = Header(default=None),
    x_session_token: str | None = Header(default=None),
) -> tuple[str | None, str | None]:
    return x_user_id, x_session_token
