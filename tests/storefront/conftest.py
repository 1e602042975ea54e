import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def schema(storefront_bed):
    """Create tables when the selected environment is SQL-backed."""
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    setup_db(storefront)
    yield
    drop_db(storefront)


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain the event store
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def make_product():
    """Create a product, optionally with a variant matrix.

    Returns `(product_id, {canonical key: variant_id})`.
    """
    from storefront.catalogue.creation import CreateProduct
    from storefront.catalogue.product import Product
    from storefront.catalogue.variants import SaveVariantMatrix

    def _make(matrix=None, **overrides):
        fields = {"title": "Classic Tee", "price": 20.0, "inventory": 10}
        fields.update(overrides)
        product_id = current_domain.process(CreateProduct(**fields), asynchronous=False)

        if matrix:
            current_domain.process(
                SaveVariantMatrix(product_id=product_id, variants=json.dumps(matrix)),
                asynchronous=False,
            )

        product = current_domain.repository_for(Product).get(product_id)
        return product_id, {v.variant_key: str(v.id) for v in product.variants}

    return _make
