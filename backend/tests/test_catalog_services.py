from decimal import Decimal

import pytest

from backoffice.models import Material, PriceHistory, Product, ProductionMaterial
from backoffice.services import materials_service, products_service, sales_service
from backoffice.validation import ConflictError, InsufficientStockError, NotFoundError


class TestProducts:
    def test_create_with_recipe_snapshots_material_cost(self, db_session, make_material):
        wax = make_material(purchased="10.000", cost="150.00")

        product = products_service.create_product(
            patch={"name": "Amber Candle", "price": Decimal("40.00"), "quantity": 6},
            recipe=[{"material_id": wax.id, "quantity": Decimal("0.250")}],
        )

        assert product.quantity == 6
        recipe = products_service.list_production_materials(product.id)
        assert len(recipe) == 1
        assert recipe[0].material_name == "Soy Wax"
        assert recipe[0].cost_per_unit == Decimal("15.0000")
        assert recipe[0].total_cost == Decimal("3.75")
        assert products_service.list_price_history(product.id) == []

    def test_recipe_with_unknown_material_writes_nothing(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.create_product(
                patch={"name": "Ghost", "price": Decimal("1.00")},
                recipe=[{"material_id": 31337, "quantity": Decimal("1")}],
            )
        assert db_session.query(Product).count() == 0

    def test_price_change_is_recorded(self, db_session, make_product):
        product = make_product(price="25.00")

        products_service.update_product(product_id=product.id, patch={"price": Decimal("27.50")})
        products_service.update_product(product_id=product.id, patch={"price": Decimal("27.50")})

        history = products_service.list_price_history(product.id)
        assert [h.price for h in history] == [Decimal("27.50")]
        assert history[0].reason == "Price updated"

    def test_replacing_the_recipe(self, db_session, make_product, make_material):
        wax = make_material(name="Wax")
        wick = make_material(name="Wick", unit="un", purchased="100.000", cost="20.00")
        product = products_service.create_product(
            patch={"name": "Candle", "price": Decimal("30.00")},
            recipe=[{"material_id": wax.id, "quantity": Decimal("0.200")}],
        )

        products_service.update_product(
            product_id=product.id,
            patch={},
            recipe=[{"material_id": wick.id, "quantity": Decimal("2")}],
        )

        names = [r.material_name for r in products_service.list_production_materials(product.id)]
        assert names == ["Wick"]

    def test_manual_stock_adjustment(self, db_session, make_product):
        product = make_product(quantity=4)

        assert products_service.update_stock(product_id=product.id, delta=6).quantity == 10
        with pytest.raises(InsufficientStockError):
            products_service.update_stock(product_id=product.id, delta=-11)

    def test_low_stock_uses_settings_threshold(self, db_session, settings_row, make_product):
        make_product(name="Low", quantity=2)
        make_product(name="Edge", quantity=10)
        make_product(name="Plenty", quantity=11)

        result = products_service.list_low_stock()

        assert result["threshold"] == 10
        assert [p["name"] for p in result["items"]] == ["Low", "Edge"]
        assert result["count"] == 2

    def test_low_stock_before_init_uses_config_default(self, app, db_session, make_product):
        make_product(name="Low", quantity=1)
        assert products_service.low_stock_threshold() == app.config["DEFAULT_LOW_STOCK_THRESHOLD"]

    def test_category_listing_ignores_case(self, db_session, make_product):
        make_product(name="A", category="Candles")
        make_product(name="B", category="Soaps")
        result = products_service.list_products_by_category("candles")
        assert [p["name"] for p in result["items"]] == ["A"]

    def test_delete_removes_recipe_and_history(self, db_session, make_product, make_material):
        wax = make_material()
        product = products_service.create_product(
            patch={"name": "Candle", "price": Decimal("30.00")},
            recipe=[{"material_id": wax.id, "quantity": Decimal("0.5")}],
        )
        products_service.update_product(product_id=product.id, patch={"price": Decimal("31.00")})

        products_service.delete_product(product_id=product.id)

        assert db_session.query(Product).count() == 0
        assert db_session.query(ProductionMaterial).count() == 0
        assert db_session.query(PriceHistory).count() == 0

    def test_sold_product_cannot_be_deleted(self, db_session, customer, make_product):
        product = make_product(quantity=5)
        sales_service.create_sale(
            patch={"customer_id": customer.id},
            items=[{"product_id": product.id, "quantity": 1}],
        )

        with pytest.raises(ConflictError):
            products_service.delete_product(product_id=product.id)
        assert db_session.query(Product).count() == 1


class TestMaterials:
    def test_cost_per_unit_is_derived(self, db_session):
        material = materials_service.create_material(patch={
            "name": "Fragrance Oil",
            "unit": "ml",
            "total_quantity_purchased": Decimal("500.000"),
            "total_cost_paid": Decimal("80.00"),
            "low_stock_alert": Decimal("50.000"),
        })

        assert material.cost_per_unit == Decimal("0.1600")
        assert material.current_stock == Decimal("500.000")

    def test_update_rederives_cost(self, db_session, make_material):
        material = make_material(purchased="10.000", cost="150.00")

        updated = materials_service.update_material(
            material_id=material.id, patch={"total_cost_paid": Decimal("200.00")},
        )

        assert updated.cost_per_unit == Decimal("20.0000")

    def test_zero_purchase_gives_zero_cost(self):
        assert materials_service.derive_cost_per_unit(Decimal("10.00"), Decimal("0")) == Decimal("0")

    def test_low_stock_compares_against_each_alert(self, db_session, make_material):
        make_material(name="Low", current_stock=Decimal("0.500"), low_stock_alert=Decimal("1.000"))
        make_material(name="Fine", current_stock=Decimal("5.000"), low_stock_alert=Decimal("1.000"))

        assert [m.name for m in materials_service.list_low_stock_materials()] == ["Low"]

    def test_stock_adjustment_may_go_negative(self, db_session, make_material):
        material = make_material(purchased="1.000")

        updated = materials_service.update_stock(material_id=material.id, delta=Decimal("-2.250"))

        assert updated.current_stock == Decimal("-1.250")

    def test_material_in_a_recipe_cannot_be_deleted(self, db_session, make_material):
        wax = make_material()
        products_service.create_product(
            patch={"name": "Candle", "price": Decimal("30.00")},
            recipe=[{"material_id": wax.id, "quantity": Decimal("0.5")}],
        )

        with pytest.raises(ConflictError) as exc:
            materials_service.delete_material(material_id=wax.id)

        assert exc.value.details["products_count"] == 1
        assert db_session.query(Material).count() == 1
