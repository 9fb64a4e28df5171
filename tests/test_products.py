"""
Product catalogue, stock and pricing tests
"""

from conftest import api_request


def create_product(token, code, name, **extra):
    response = api_request("POST", "/products/", token, {"code": code, "name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_lookup(token):
    product = create_product(token, "P-100", "Desk Lamp", barcode="5601234567890",
                             cost_price=12.5, sale_price=24.9, category="Lighting")
    assert product["vat_rate"] == 23
    assert product["status"] == "active"

    assert api_request("GET", "/products/code/P-100", token).json()["id"] == product["id"]
    assert api_request("GET", "/products/barcode/5601234567890", token).json()["id"] == product["id"]
    assert api_request("GET", "/products/code/NOPE", token).status_code == 404


def test_code_and_barcode_are_unique(token):
    create_product(token, "P-100", "Desk Lamp", barcode="111")

    response = api_request("POST", "/products/", token, {"code": "P-100", "name": "Other"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Product code already exists"

    response = api_request("POST", "/products/", token, {"code": "P-200", "name": "Other", "barcode": "111"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Barcode already exists"


def test_list_filters_and_sorting(token):
    create_product(token, "A1", "Cable", sale_price=5, current_stock=0, min_stock=2, category="Electrical")
    create_product(token, "B1", "Bulb", sale_price=3, current_stock=50, min_stock=10, category="Lighting")
    create_product(token, "C1", "Chandelier", sale_price=300, current_stock=4, min_stock=5,
                   category="Lighting", is_featured=True)

    page = api_request("GET", "/products/", token, params={"sortBy": "sale_price", "sortOrder": "desc"}).json()
    assert [p["code"] for p in page["data"]] == ["C1", "A1", "B1"]

    low = api_request("GET", "/products/", token, params={"lowStock": "true"}).json()
    assert {p["code"] for p in low["data"]} == {"A1", "C1"}

    out = api_request("GET", "/products/", token, params={"outOfStock": "true"}).json()
    assert [p["code"] for p in out["data"]] == ["A1"]

    priced = api_request("GET", "/products/", token, params={"minPrice": 4, "maxPrice": 100}).json()
    assert [p["code"] for p in priced["data"]] == ["A1"]

    featured = api_request("GET", "/products/", token, params={"isFeatured": "true"}).json()
    assert [p["code"] for p in featured["data"]] == ["C1"]

    categories = api_request("GET", "/products/categories", token).json()
    assert categories == ["Electrical", "Lighting"]


def test_stock_adjustment_records_movement(token):
    product = create_product(token, "P-1", "Widget", current_stock=10)

    response = api_request("PATCH", f"/products/{product['id']}/stock", token, {
        "movement_type": "sale",
        "quantity": -4,
        "reference": "SO-2025-000001",
    })
    assert response.status_code == 200
    result = response.json()
    assert result["product"]["current_stock"] == 6
    assert result["movement"]["previous_stock"] == 10
    assert result["movement"]["new_stock"] == 6

    movements = api_request("GET", f"/products/{product['id']}/movements", token).json()
    assert len(movements) == 1


def test_insufficient_stock_changes_nothing(token):
    product = create_product(token, "P-1", "Widget", current_stock=3)

    response = api_request("PATCH", f"/products/{product['id']}/stock", token, {
        "movement_type": "sale",
        "quantity": -5,
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient stock. Current: 3, Requested: 5"

    assert api_request("GET", f"/products/{product['id']}", token).json()["current_stock"] == 3
    assert api_request("GET", f"/products/{product['id']}/movements", token).json() == []


def test_low_stock_and_reorder_lists(token):
    create_product(token, "LOW", "Low", current_stock=1, min_stock=5)
    create_product(token, "REO", "Reorder", current_stock=8, min_stock=2, reorder_point=10)
    create_product(token, "OK", "Fine", current_stock=100, min_stock=5, reorder_point=10)

    low = api_request("GET", "/products/low-stock", token).json()
    assert [p["code"] for p in low] == ["LOW"]

    reorder = api_request("GET", "/products/reorder-needed", token).json()
    assert [p["code"] for p in reorder] == ["REO"]


def test_bulk_price_update(token):
    a = create_product(token, "A", "Alpha", sale_price=100)
    b = create_product(token, "B", "Beta", sale_price=10)
    create_product(token, "C", "Gamma", sale_price=10, is_active=False)

    response = api_request("POST", "/products/bulk/price-update", token, {"percentage_adjustment": 10})
    assert response.json()["productsUpdated"] == 2
    assert api_request("GET", f"/products/{a['id']}", token).json()["sale_price"] == 110
    assert api_request("GET", f"/products/{b['id']}", token).json()["sale_price"] == 11

    response = api_request("POST", "/products/bulk/price-update", token, {
        "product_ids": [a["id"]],
        "fixed_adjustment": -10,
        "new_vat_rate": 6,
    })
    assert response.json()["productsUpdated"] == 1
    updated = api_request("GET", f"/products/{a['id']}", token).json()
    assert updated["sale_price"] == 100
    assert updated["vat_rate"] == 6


def test_bulk_price_update_requires_an_adjustment(token):
    response = api_request("POST", "/products/bulk/price-update", token, {"product_ids": [1]})
    assert response.status_code == 400
    assert response.json()["detail"] == "No price adjustments specified"


def test_calculate_price(token):
    response = api_request("POST", "/products/calculate-price", token, {
        "cost_price": 60,
        "profit_margin": 40,
        "vat_rate": 23,
    })
    assert response.status_code == 200
    assert response.json()["salePriceWithVAT"] == 123.0

    response = api_request("POST", "/products/calculate-price", token, {"cost_price": 60, "profit_margin": 100})
    assert response.status_code == 400


def test_stats(token):
    create_product(token, "A", "Alpha", cost_price=10, sale_price=20, current_stock=5, category="Tools")
    create_product(token, "B", "Beta", cost_price=2, sale_price=3, current_stock=0, type="service")

    stats = api_request("GET", "/products/stats", token).json()
    assert stats["total"] == 2
    assert stats["outOfStock"] == 1
    assert stats["inventoryValueCost"] == 50.0
    assert stats["inventoryValueSale"] == 100.0
    assert stats["byCategory"] == {"Tools": 1, "uncategorized": 1}
    assert stats["byType"] == {"product": 1, "service": 1}
    assert stats["topByStockValue"][0]["code"] == "A"


def test_soft_delete(token):
    product = create_product(token, "P-1", "Widget")
    response = api_request("DELETE", f"/products/{product['id']}", token)
    assert response.json()["message"] == "Product deleted successfully"
    assert api_request("GET", f"/products/{product['id']}", token).status_code == 404

    # The code becomes available again
    create_product(token, "P-1", "Widget v2")
