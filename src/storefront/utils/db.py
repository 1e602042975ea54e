"""Schema management for SQL-backed storefront providers.

The memory provider used in development and tests needs none of this; it
matters only for the PostgreSQL overlay used in production.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    for provider in domain.providers.values():
        if provider.conn_info["provider"] in SQL_PROVIDERS:
            yield provider, create_engine(provider.conn_info["database_uri"])


def _register_models(domain: Domain, provider) -> None:
    # A model is added to the provider's metadata the first time its DAO is built
    records = list(domain.registry.aggregates.values()) + list(domain.registry.entities.values())
    for record in records:
        if record.cls.meta_.provider == provider.name:
            domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create the product, variant, image, cart, cart item and merge record tables."""
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            _register_models(domain, provider)
            provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            _register_models(domain, provider)
            provider._metadata.drop_all(engine)
