"""Pricing engine: pure totals computation."""
import pytest
from storefront.errors import OutOfStockError, ProductMismatchError, ValidationError
from storefront.services.pricing import PricingEngine, RequestedItem, ShopSettings, VariantSnapshot


@pytest.fixture
def catalog():
    return {
        1: VariantSnapshot(id=1, product_id=10, product_title='Home Jersey', name='M', stock=5, base_price=10000),
        2: VariantSnapshot(id=2, product_id=10, product_title='Home Jersey', name='XL', stock=2, base_price=10000, price=12000),
        3: VariantSnapshot(id=3, product_id=20, product_title='Away Jersey', name='S', stock=1, base_price=30000),
    }


@pytest.fixture
def engine():
    return PricingEngine(ShopSettings())


def test_base_price_used_when_no_override(engine, catalog):
    quote = engine.quote([RequestedItem(10, 1, 2)], catalog)
    assert quote.subtotal == 20000
    assert quote.total_price == 20000
    assert quote.line_items[0].unit_price == 10000
    assert quote.line_items[0].title == 'Home Jersey (M)'


def test_variant_price_override(engine, catalog):
    quote = engine.quote([RequestedItem(10, 2, 2)], catalog)
    assert quote.subtotal == 24000


def test_subtotal_independent_of_item_order(engine, catalog):
    items = [RequestedItem(10, 1, 3), RequestedItem(10, 2, 1), RequestedItem(20, 3, 1)]
    forward = engine.quote(items, catalog)
    backward = engine.quote(list(reversed(items)), catalog)
    assert forward.subtotal == backward.subtotal == 3 * 10000 + 12000 + 30000


def test_surcharges_applied_once_per_order(engine, catalog):
    items = [RequestedItem(10, 1, 2), RequestedItem(20, 3, 1)]
    quote = engine.quote(items, catalog, custom_name='MESSI', custom_number=10, has_patch=True)
    assert quote.surcharges == {'customName': 15000, 'customNumber': 10000, 'patch': 20000}
    assert quote.total_price == quote.subtotal + 45000


def test_empty_custom_name_is_not_charged(engine, catalog):
    quote = engine.quote([RequestedItem(10, 1, 1)], catalog, custom_name='', has_patch=False)
    assert quote.surcharges == {}


def test_surcharge_table_comes_from_settings(catalog):
    engine = PricingEngine(ShopSettings(custom_name_price=1, custom_number_price=2, patch_price=4))
    quote = engine.quote([RequestedItem(10, 1, 1)], catalog, custom_name='A', custom_number=7, has_patch=True)
    assert quote.total_price == 10000 + 7


def test_quote_is_idempotent(engine, catalog):
    items = [RequestedItem(10, 1, 2)]
    assert engine.quote(items, catalog, has_patch=True) == engine.quote(items, catalog, has_patch=True)


def test_unknown_variant_is_product_mismatch(engine, catalog):
    with pytest.raises(ProductMismatchError) as exc:
        engine.quote([RequestedItem(10, 99, 1)], catalog)
    assert exc.value.code == 'PRODUCT_MISMATCH'


def test_variant_of_another_product_is_product_mismatch(engine, catalog):
    with pytest.raises(ProductMismatchError):
        engine.quote([RequestedItem(20, 1, 1)], catalog)


def test_out_of_stock_names_line_item(engine, catalog):
    with pytest.raises(OutOfStockError) as exc:
        engine.quote([RequestedItem(10, 2, 3)], catalog)
    assert exc.value.code == 'OUT_OF_STOCK'
    assert exc.value.detail == 'Home Jersey (XL)'


def test_out_of_stock_sums_repeated_variant_lines(engine, catalog):
    with pytest.raises(OutOfStockError):
        engine.quote([RequestedItem(10, 2, 1), RequestedItem(10, 2, 2)], catalog)


def test_empty_item_list_rejected(engine, catalog):
    with pytest.raises(ValidationError):
        engine.quote([], catalog)


def test_settings_from_config():
    settings = ShopSettings.from_config({'CUSTOM_NAME_PRICE': '500', 'LEDGER_RECORD_FULL_PAYMENT': True})
    assert settings.custom_name_price == 500
    assert settings.custom_number_price == 10000
    assert settings.record_full_payment is True
