import pytest

from greenleaf.cart.store import CartStore
from greenleaf.catalog.store import CatalogStore
from greenleaf.shared.exceptions import NotFoundException


def test_empty_cart(client, user):
    user_id, headers = user
    response = client.get("/api/cart", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user_id"] == user_id
    assert data["items"] == []
    assert data["total"] == 0

def test_cart_requires_auth(client):
    assert client.get("/api/cart").status_code == 401

def test_adding_same_product_twice_sums_quantity(client, user, make_product):
    _, headers = user
    product = make_product(price=500)

    client.post("/api/cart/items", json={"productId": product["id"], "quantity": 2}, headers=headers)
    response = client.post("/api/cart/items", json={"productId": product["id"], "quantity": 3}, headers=headers)

    items = response.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 5
    assert response.json()["data"]["total"] == 2500

def test_cart_total_uses_discount_price(client, user, make_product):
    _, headers = user
    product = make_product(price=500, discount_price=400)
    response = client.post("/api/cart/items", json={"productId": product["id"], "quantity": 2}, headers=headers)
    assert response.json()["data"]["total"] == 800

def test_add_unknown_product(client, user):
    _, headers = user
    response = client.post("/api/cart/items", json={"productId": "64b7f0c2a1b2c3d4e5f60718"}, headers=headers)
    assert response.status_code == 404

def test_non_positive_quantity_rejected(client, user, make_product):
    _, headers = user
    product = make_product()
    response = client.post("/api/cart/items", json={"productId": product["id"], "quantity": 0}, headers=headers)
    assert response.status_code == 422

def test_update_remove_and_clear(client, user, make_product):
    _, headers = user
    plant = make_product("Money Plant", 500)
    trowel = make_product("Hand Trowel", 150, type="Tools")
    client.post("/api/cart/items", json={"productId": plant["id"]}, headers=headers)
    client.post("/api/cart/items", json={"productId": trowel["id"]}, headers=headers)

    updated = client.put(f"/api/cart/items/{plant['id']}", json={"quantity": 4}, headers=headers)
    assert {i["product_id"]: i["quantity"] for i in updated.json()["data"]["items"]} == {
        plant["id"]: 4, trowel["id"]: 1,
    }

    removed = client.delete(f"/api/cart/items/{trowel['id']}", headers=headers)
    assert [i["product_id"] for i in removed.json()["data"]["items"]] == [plant["id"]]

    assert client.delete("/api/cart", headers=headers).status_code == 200
    assert client.get("/api/cart", headers=headers).json()["data"]["items"] == []

def test_deleted_product_shows_unavailable(client, user, make_product, admin_headers):
    _, headers = user
    product = make_product()
    client.post("/api/cart/items", json={"productId": product["id"]}, headers=headers)
    client.delete(f"/api/products/{product['id']}", headers=admin_headers)

    data = client.get("/api/cart", headers=headers).json()["data"]
    assert data["items"][0]["available"] is False
    assert data["total"] == 0

def test_carts_are_per_user(client, register_user, make_product):
    _, first = register_user()
    _, second = register_user(email="ravi@gmail.com", name="Ravi Kumar")
    product = make_product()
    client.post("/api/cart/items", json={"productId": product["id"]}, headers=first)

    assert client.get("/api/cart", headers=second).json()["data"]["items"] == []


# --- Store level ---

@pytest.fixture
def carts(db):
    return CartStore(db, CatalogStore(db))

async def test_store_add_item_twice(carts, db):
    result = await db.products.insert_one({"name": "Money Plant", "slug": "money-plant", "price": 500})
    product_id = str(result.inserted_id)

    await carts.add_item("user-1", product_id, 1)
    cart = await carts.add_item("user-1", product_id, 2)

    assert cart["items"] == [{"product_id": product_id, "quantity": 3}]
    assert await db.carts.count_documents({"user_id": "user-1"}) == 1

async def test_store_rejects_missing_product(carts):
    with pytest.raises(NotFoundException):
        await carts.add_item("user-1", "64b7f0c2a1b2c3d4e5f60718", 1)

async def test_store_update_missing_line_is_noop(carts):
    cart = await carts.set_item_quantity("user-1", "64b7f0c2a1b2c3d4e5f60718", 3)
    assert cart["items"] == []
