"""Integration tests for the merchant product endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.utils.globals import current_domain
from storefront.api import cart_router, product_router, register_error_handlers
from storefront.catalogue.product import Product


@pytest.fixture()
def client():
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(product_router)
    app.include_router(cart_router)
    return TestClient(app)


def _create(client, **fields):
    body = {"title": "Classic Tee", "price": 19.99, "inventory": 4}
    body.update(fields)
    response = client.post("/products", json=body)
    assert response.status_code == 201
    return response.json()["product_id"]


class TestCreateProductEndpoint:
    def test_create_product(self, client):
        product_id = _create(client, images=["front.jpg", "back.jpg"], store_id="store-042")

        product = current_domain.repository_for(Product).get(product_id)
        assert product.title == "Classic Tee"
        assert product.inventory == 4
        assert len(product.images) == 2

    @pytest.mark.parametrize("inventory", [-1, 2.5, "many"])
    def test_invalid_inventory_rejected(self, client, inventory):
        response = client.post("/products", json={"title": "Bad", "price": 1.0, "inventory": inventory})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_inventory"


class TestUpdateProductEndpoint:
    def test_update_details_and_images(self, client):
        product_id = _create(client, images=["old.jpg"])

        response = client.put(f"/products/{product_id}", json={"price": 24.0, "images": ["new.jpg"]})

        assert response.status_code == 200
        product = current_domain.repository_for(Product).get(product_id)
        assert product.price == 24.0
        assert [i.url for i in product.images] == ["new.jpg"]


class TestVariantMatrixEndpoints:
    def test_save_and_read_matrix(self, client):
        product_id = _create(client)

        saved = client.put(
            f"/products/{product_id}/variants",
            json={"variants": {"S||Cotton": 4, "M||Cotton": 0}},
        )
        assert saved.status_code == 200
        assert set(saved.json()["variants"]) == {"S||Cotton", "M||Cotton"}

        matrix = client.get(f"/products/{product_id}/variant-matrix").json()
        assert matrix["inventory"] == {"S||Cotton": 4, "M||Cotton": 0}
        assert [option["value"] for option in matrix["attributes"]["sizes"]] == ["S", "M"]
        assert [option["value"] for option in matrix["attributes"]["materials"]] == ["Cotton"]

    def test_invalid_inventory_in_matrix(self, client):
        product_id = _create(client)

        response = client.put(f"/products/{product_id}/variants", json={"variants": {"S||": -3}})

        assert response.status_code == 400
        assert current_domain.repository_for(Product).get(product_id).variants == []

    def test_removing_carted_variant_conflicts(self, client):
        product_id = _create(client)
        variants = client.put(
            f"/products/{product_id}/variants", json={"variants": {"S||": 1, "M||": 1}}
        ).json()["variants"]
        client.post(
            "/cart",
            json={"product_id": product_id, "variant_id": variants["M||"]},
            headers={"X-Session-Token": "sess-1"},
        )

        response = client.put(f"/products/{product_id}/variants", json={"variants": {"S||": 1}})

        assert response.status_code == 409
        assert response.json()["variant_keys"] == ["M||"]

    def test_cascade_removes_carted_lines(self, client):
        product_id = _create(client)
        variants = client.put(
            f"/products/{product_id}/variants", json={"variants": {"S||": 1, "M||": 1}}
        ).json()["variants"]
        client.post(
            "/cart",
            json={"product_id": product_id, "variant_id": variants["M||"]},
            headers={"X-Session-Token": "sess-1"},
        )

        response = client.put(
            f"/products/{product_id}/variants",
            json={"variants": {"S||": 1}, "on_referenced": "cascade"},
        )

        assert response.status_code == 200
        cart = client.get("/cart", headers={"X-Session-Token": "sess-1"}).json()
        assert cart["items"] == []

    def test_update_variant_details(self, client):
        product_id = _create(client)
        variants = client.put(f"/products/{product_id}/variants", json={"variants": {"S||": 1}}).json()["variants"]

        response = client.put(f"/products/{product_id}/variants/{variants['S||']}", json={"price": 9.5})

        assert response.status_code == 200
        product = current_domain.repository_for(Product).get(product_id)
        assert product.find_variant(variants["S||"]).price == 9.5

    def test_update_unknown_variant(self, client):
        product_id = _create(client)
        response = client.put(f"/products/{product_id}/variants/nope", json={"price": 9.5})
        assert response.status_code == 404


class TestDeleteProductEndpoint:
    def test_delete_product(self, client):
        product_id = _create(client)

        assert client.delete(f"/products/{product_id}").status_code == 200
        assert client.get(f"/products/{product_id}/variant-matrix").status_code == 404

    def test_delete_carted_product_conflicts(self, client):
        product_id = _create(client)
        client.post("/cart", json={"product_id": product_id}, headers={"X-Session-Token": "sess-1"})

        assert client.delete(f"/products/{product_id}").status_code == 409
        assert client.delete(f"/products/{product_id}?on_referenced=cascade").status_code == 200
