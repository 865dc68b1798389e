import pytest

from greenleaf.catalog.store import slugify, effective_price


@pytest.mark.parametrize("name,expected", [
    ("Money Plant", "money-plant"),
    ("  Snake  Plant (Large) ", "snake-plant-large"),
    ("Tulsí Seeds", "tulsi-seeds"),
])
def test_slugify(name, expected):
    assert slugify(name) == expected

def test_effective_price_uses_discount_only_when_lower():
    assert effective_price({"price": 500, "discount_price": 450}) == 450
    assert effective_price({"price": 500, "discount_price": 0}) == 500
    assert effective_price({"price": 500, "discount_price": 600}) == 500


def test_create_product_requires_admin(client, user):
    _, headers = user
    body = {"name": "Money Plant", "description": "Indoor plant", "type": "Plants", "price": 500}
    response = client.post("/api/products/add", json=body, headers=headers)
    assert response.status_code == 403

def test_create_and_fetch_product(client, make_product):
    created = make_product()
    assert created["slug"] == "money-plant"

    by_slug = client.get("/api/products/slug/money-plant")
    assert by_slug.status_code == 200
    assert by_slug.json()["data"]["id"] == created["id"]

    by_id = client.get(f"/api/products/id/{created['id']}")
    assert by_id.json()["data"]["name"] == "Money Plant"

def test_duplicate_slug_rejected(client, make_product, admin_headers):
    make_product()
    body = {"name": "Money Plant", "description": "Again", "type": "Plants", "price": 300}
    response = client.post("/api/products/add", json=body, headers=admin_headers)
    assert response.status_code == 400

def test_unknown_product_is_404(client):
    response = client.get("/api/products/id/64b7f0c2a1b2c3d4e5f60718")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"

def test_malformed_product_id_is_400(client):
    response = client.get("/api/products/id/not-an-id")
    assert response.status_code == 400

def test_unknown_category_name_lists_available(client, admin_headers):
    client.post("/api/categories/create", json={"name": "Indoor", "image": "https://img/indoor.png"}, headers=admin_headers)
    body = {"name": "Fern", "description": "Shade plant", "type": "Plants", "price": 200, "categories": ["Outdoor"]}
    response = client.post("/api/products/add", json=body, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"available_categories": ["Indoor"]}

def test_list_products_filters_and_paginates(client, make_product):
    make_product("Money Plant", 500)
    make_product("Snake Plant", 300)
    make_product("Hand Trowel", 150, type="Tools")

    response = client.get("/api/products", params={"type": "plants", "sortBy": "price", "order": "asc"})
    data = response.json()["data"]
    assert data["total_products"] == 2
    assert [p["name"] for p in data["products"]] == ["Snake Plant", "Money Plant"]

    priced = client.get("/api/products", params={"minPrice": 200, "maxPrice": 400}).json()["data"]
    assert [p["name"] for p in priced["products"]] == ["Snake Plant"]

    paged = client.get("/api/products", params={"limit": 2, "page": 2}).json()["data"]
    assert paged["total_pages"] == 2
    assert len(paged["products"]) == 1

def test_list_products_unknown_category_is_empty(client, make_product):
    make_product()
    data = client.get("/api/products", params={"category": "nowhere"}).json()["data"]
    assert data["products"] == []
    assert data["total_products"] == 0

def test_search_escapes_regex(client, make_product):
    make_product("Money Plant")
    assert client.get("/api/products/search", params={"q": "money"}).json()["data"][0]["slug"] == "money-plant"
    assert client.get("/api/products/search", params={"q": ".*"}).json()["data"] == []
    assert client.get("/api/products/search").status_code == 400

def test_featured_and_bulk(client, make_product):
    make_product("Money Plant", featured=True)
    make_product("Potting Mix", type="Fertilizers", bulk=True)

    featured = client.get("/api/products/featured").json()["data"]
    assert [p["name"] for p in featured] == ["Money Plant"]
    bulk = client.get("/api/products/bulk").json()["data"]
    assert [p["name"] for p in bulk] == ["Potting Mix"]

def test_similar_and_category_listing(client, make_product, admin_headers):
    created = client.post(
        "/api/categories/create", json={"name": "Indoor", "image": "https://img/indoor.png"}, headers=admin_headers
    )
    assert created.json()["data"]["slug"] == "indoor"

    make_product("Money Plant", categories=["Indoor"], rating=4)
    make_product("Snake Plant", categories=["Indoor"], rating=5)
    make_product("Hand Trowel", type="Tools")

    similar = client.get("/api/products/similar/money-plant").json()["data"]
    assert similar["current_product"] == "Money Plant"
    assert [p["name"] for p in similar["products"]] == ["Snake Plant"]

    listing = client.get("/api/products/category/indoor").json()["data"]
    assert listing["category"]["name"] == "Indoor"
    assert listing["total_products"] == 2

    assert client.get("/api/products/category/outdoor").status_code == 404

def test_update_and_delete_product(client, make_product, admin_headers):
    product = make_product()
    updated = client.put(
        f"/api/products/update/{product['id']}", json={"price": 450, "in_stock": False}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["price"] == 450
    assert updated.json()["data"]["in_stock"] is False
    assert updated.json()["data"]["updated_at"] is not None

    assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/products/id/{product['id']}").status_code == 404
    assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 404

def test_categories_listed_by_name(client, admin_headers):
    for name in ("Outdoor", "Indoor"):
        client.post("/api/categories/create", json={"name": name, "image": "https://img/c.png"}, headers=admin_headers)
    names = [c["name"] for c in client.get("/api/categories").json()["data"]]
    assert names == ["Indoor", "Outdoor"]

    duplicate = client.post(
        "/api/categories/create", json={"name": "Indoor", "image": "https://img/c.png"}, headers=admin_headers
    )
    assert duplicate.status_code == 400
