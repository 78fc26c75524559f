from backoffice.models import Setting


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--company", "Candle Co"])
    second = runner.invoke(args=["system", "init", "--company", "Someone Else"])

    assert first.exit_code == 0, first.output
    assert "Created settings for: Candle Co" in first.output
    assert "Using existing settings for: Candle Co" in second.output
    assert db_session.query(Setting).count() == 1


def test_stock_low_lists_products_and_materials(app, settings_row, make_product, make_material):
    make_product(name="Almost Gone", quantity=2)
    make_product(name="Plenty", quantity=80)
    make_material(name="Wick", current_stock=0, low_stock_alert=5)

    result = app.test_cli_runner().invoke(args=["stock", "low"])

    assert result.exit_code == 0, result.output
    assert "Products with quantity <= 10: 1" in result.output
    assert "Almost Gone: 2" in result.output
    assert "Plenty" not in result.output
    assert "Wick" in result.output


def test_stock_low_threshold_override(app, settings_row, make_product):
    make_product(name="Twenty", quantity=20)

    result = app.test_cli_runner().invoke(args=["stock", "low", "--threshold", "25"])

    assert "Products with quantity <= 25: 1" in result.output
