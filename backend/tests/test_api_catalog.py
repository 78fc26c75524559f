def test_health_degraded_until_init(client, db_session):
    body = client.get("/api/health").get_json()
    assert body["status"] == "degraded"
    assert body["checks"]["database"]["details"]["settings_initialized"] is False


def test_health_ok_after_init(client, settings_row):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"


def test_cors_header_for_allowed_origin(client, db_session):
    allowed = client.get("/api/products", headers={"Origin": "http://localhost:3000"})
    other = client.get("/api/products", headers={"Origin": "http://evil.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
    assert "Access-Control-Allow-Origin" not in other.headers


def test_product_crud(client, db_session):
    created = client.post("/api/products", json={
        "name": "Cedar Candle",
        "price": "32.90",
        "quantity": 7,
        "category": "Candles",
    })
    assert created.status_code == 201
    product_id = created.get_json()["id"]

    updated = client.put(f"/api/products/{product_id}", json={"price": "35.00"})
    assert updated.status_code == 200
    assert updated.get_json()["price"] == "35.00"

    detail = client.get(f"/api/products/{product_id}").get_json()
    assert [h["price"] for h in detail["price_history"]] == ["35.00"]
    assert detail["production_materials"] == []

    assert client.delete(f"/api/products/{product_id}").get_json() == {"ok": True}
    assert client.get(f"/api/products/{product_id}").status_code == 404


def test_product_quantity_not_writable_on_update(client, make_product):
    product = make_product(quantity=3)
    resp = client.put(f"/api/products/{product.id}", json={"quantity": 99})
    assert resp.status_code == 400


def test_product_update_stock(client, make_product):
    product = make_product(quantity=3)

    ok = client.post(f"/api/products/{product.id}/update-stock", json={"quantity": 5})
    short = client.post(f"/api/products/{product.id}/update-stock", json=-20)

    assert ok.get_json()["quantity"] == 8
    assert short.status_code == 400
    assert short.get_json()["details"]["available_quantity"] == 8


def test_product_validation_errors(client, db_session):
    assert client.post("/api/products", json={"name": "No price"}).status_code == 400
    assert client.post("/api/products", json={"name": "Bad", "price": "-1"}).status_code == 400
    assert client.get("/api/products/123456").status_code == 404


def test_low_stock_endpoint(client, settings_row, make_product):
    make_product(name="Low", quantity=1)
    make_product(name="Plenty", quantity=50)

    body = client.get("/api/products/low-stock").get_json()

    assert body["threshold"] == 10
    assert [p["name"] for p in body["items"]] == ["Low"]


def test_material_update_stock_accepts_decimals(client, make_material):
    material = make_material(purchased="1.000")

    resp = client.post(f"/api/materials/{material.id}/update-stock", json={"quantity": "-1.5"})

    assert resp.status_code == 200
    assert resp.get_json()["current_stock"] == "-0.500"


def test_category_price_apply(client, make_product):
    make_product(name="A", category="candles", price="10.00")
    make_product(name="B", category="Soaps", price="10.00")
    cp = client.post("/api/category-prices", json={"category_name": "Candles", "price": "19.90"}).get_json()

    resp = client.post(f"/api/category-prices/{cp['id']}/apply-to-products")

    assert resp.get_json() == {"category_name": "Candles", "price": "19.90", "updated_count": 1}

    dup = client.post("/api/category-prices", json={"category_name": "CANDLES", "price": "1.00"})
    assert dup.status_code == 409


def test_installment_toggle_route(client, db_session):
    created = client.post("/api/installments", json={
        "description": "Wax melter",
        "total_amount": "300.00",
        "installments": 3,
        "category": "equipment",
    })
    assert created.status_code == 201
    body = created.get_json()
    assert body["installment_amount"] == "100.00"
    assert len(body["payment_status"]) == 3

    toggled = client.post(f"/api/installments/{body['id']}/toggle-payment/2")
    assert toggled.status_code == 200
    assert client.post(f"/api/installments/{body['id']}/toggle-payment/9").status_code == 404


def test_expense_date_range_route(client, db_session):
    client.post("/api/expenses", json={
        "description": "Wax", "category": "production", "amount": "80.00", "date": "2030-01-31T18:00:00Z",
    })

    resp = client.get("/api/expenses/date-range?start_date=2030-01-01&end_date=2030-01-31")

    assert resp.status_code == 200
    assert resp.get_json()["count"] == 1


def test_settings_roundtrip(client, settings_row):
    resp = client.put("/api/settings", json={"low_stock_threshold": 3, "company_phone": "555-0101"})
    assert resp.status_code == 200
    body = client.get("/api/settings").get_json()
    assert body["low_stock_threshold"] == 3
    assert body["company_phone"] == "555-0101"


def test_installment_count_over_the_limit_is_a_400(client, db_session):
    resp = client.post("/api/installments", json={
        "description": "Too long",
        "total_amount": "100.00",
        "installments": 10000000,
        "category": "other",
    })

    assert resp.status_code == 400
    assert "installments" in resp.get_json()["error"]
