"""Tests for cart shipping fee calculation"""
import pytest

from storefront.core.exceptions import MissingDefaultWarehouseError
from storefront.models import CartShipping
from storefront.services.cart.shipping_service import (
    CartShippingService,
    item_unit_weight_grams,
    parse_weight_grams,
)
from storefront.services.cart.warehouse_shipping import WarehouseShippingCalculator
from tests.doubles import StubFreightClient
from tests.factories import make_cart, make_product, make_variant, make_warehouse

CARRIER_OPTIONS = [
    {"logisticName": "Economy Post", "logisticPrice": 7.0, "totalPostageFee": 7.5, "logisticAging": "15-25"},
    {"logisticName": "CJPacket", "logisticPrice": 5.0, "totalPostageFee": 5.2, "logisticAging": "8-12"},
]


def _rows(db, cart):
    return db.query(CartShipping).filter(CartShipping.cart_id == cart.id).order_by(CartShipping.id).all()


@pytest.fixture
def supplier_cart(db):
    product = make_product(db, cj_pid="P1", supplier_payload={"packingWeight": "200-300"})
    variant = make_variant(db, product, cj_vid="V1")
    return make_cart(db, items=[(product, variant, 2, 1)])


class TestCalculateShippingFees:

    def test_cheapest_carrier_and_warehouse_row(self, db, settings, supplier_cart):
        make_warehouse(db, country="US", carrier_name="Local Express")
        freight = StubFreightClient(options=CARRIER_OPTIONS)

        total = CartShippingService(freight, settings).calculate_shipping_fees(db, supplier_cart)

        assert freight.payloads == [{
            "startCountryCode": "CN",
            "endCountryCode": "US",
            "products": [{"quantity": 2, "vid": "V1"}],
        }]

        supplier_row, warehouse_row = _rows(db, supplier_cart)
        assert supplier_row.provider_id == 1
        assert supplier_row.logistic_name == "CJPacket"
        assert supplier_row.logistic_price == 5.0
        assert supplier_row.total_postage_fee == 5.2
        assert supplier_row.aging == "8-12"

        # 2 x 300g = 0.6kg, first tier
        assert warehouse_row.provider_id is None
        assert warehouse_row.logistic_name == "Local Express"
        assert warehouse_row.logistic_price == 4.0

        assert total == 9.0

    def test_recalculation_replaces_rows(self, db, settings, supplier_cart):
        make_warehouse(db)
        service = CartShippingService(StubFreightClient(options=CARRIER_OPTIONS), settings)

        first = service.calculate_shipping_fees(db, supplier_cart)
        second = service.calculate_shipping_fees(db, supplier_cart)

        assert first == second
        assert len(_rows(db, supplier_cart)) == 2

    def test_missing_default_warehouse_is_fatal(self, db, settings, supplier_cart):
        make_warehouse(db, is_default=False)
        db.add(CartShipping(cart_id=supplier_cart.id, logistic_name="old", logistic_price=3))
        db.commit()
        freight = StubFreightClient(options=CARRIER_OPTIONS)

        with pytest.raises(MissingDefaultWarehouseError):
            CartShippingService(freight, settings).calculate_shipping_fees(db, supplier_cart)

        assert [row.logistic_name for row in _rows(db, supplier_cart)] == ["old"]
        assert freight.payloads == []

    def test_freight_failure_only_skips_supplier_row(self, db, settings, supplier_cart):
        make_warehouse(db)

        total = CartShippingService(
            StubFreightClient(error="HTTP 503"), settings
        ).calculate_shipping_fees(db, supplier_cart)

        rows = _rows(db, supplier_cart)
        assert len(rows) == 1
        assert rows[0].provider_id is None
        assert total == 4.0

    def test_empty_carrier_list_only_skips_supplier_row(self, db, settings, supplier_cart):
        make_warehouse(db)

        CartShippingService(StubFreightClient(options=[]), settings).calculate_shipping_fees(db, supplier_cart)

        assert [row.provider_id for row in _rows(db, supplier_cart)] == [None]

    def test_other_providers_get_no_freight_quote(self, db, settings):
        make_warehouse(db)
        product = make_product(db, cj_pid="P2", supplier_payload={"productWeight": 1500})
        cart = make_cart(db, items=[(product, None, 1, 2)])
        freight = StubFreightClient(options=CARRIER_OPTIONS)

        total = CartShippingService(freight, settings).calculate_shipping_fees(db, cart)

        assert freight.payloads == []
        # 1.5kg lands in the 5kg tier
        assert total == 9.0

    def test_product_id_used_for_lines_without_variant(self, db, settings):
        make_warehouse(db, country="")
        product = make_product(db, cj_pid="P3")
        cart = make_cart(db, items=[(product, None, 3, 1)])
        freight = StubFreightClient(options=CARRIER_OPTIONS)

        CartShippingService(freight, settings).calculate_shipping_fees(db, cart)

        assert freight.payloads[0]["endCountryCode"] == "CN"
        assert freight.payloads[0]["products"] == [{"quantity": 3, "vid": "P3"}]


class TestWeights:

    @pytest.mark.parametrize("value, expected", [
        ("100-250", 250.0),
        ("100.5 - 250.5", 250.5),
        ("500", 500.0),
        (300, 300.0),
        (0, None),
        ("", None),
        ("abc", None),
        (None, None),
    ])
    def test_parse_weight_grams(self, value, expected):
        assert parse_weight_grams(value) == expected

    def test_packing_weight_wins(self, db):
        product = make_product(db, supplier_payload={"packingWeight": "400", "productWeight": "300"})
        variant = make_variant(db, product, supplier_payload={"variantWeight": 100})
        cart = make_cart(db, items=[(product, variant, 1, 1)])

        assert item_unit_weight_grams(cart.items[0]) == 400.0

    def test_product_weight_before_variant_weight(self, db):
        product = make_product(db, supplier_payload={"productWeight": "300"})
        variant = make_variant(db, product, supplier_payload={"variantWeight": 100})
        cart = make_cart(db, items=[(product, variant, 1, 1)])

        assert item_unit_weight_grams(cart.items[0]) == 300.0

    def test_variant_weight_is_last_resort(self, db):
        product = make_product(db, supplier_payload={})
        variant = make_variant(db, product, supplier_payload={"variantWeight": "120"})
        cart = make_cart(db, items=[(product, variant, 1, 1)])

        assert item_unit_weight_grams(cart.items[0]) == 120.0

    def test_unknown_weight_counts_zero(self, db):
        product = make_product(db)
        cart = make_cart(db, items=[(product, None, 1, 1)])

        assert item_unit_weight_grams(cart.items[0]) == 0.0


class TestWarehouseShippingCalculator:

    @pytest.mark.parametrize("weight, expected", [
        (0.0, 4.0),
        (0.5, 4.0),
        (1.0, 4.0),
        (3.0, 9.0),
        (5.0, 9.0),
        # 2.2kg over the heaviest tier -> 3 started kg at 1.5
        (7.2, 13.5),
    ])
    def test_tiers(self, db, weight, expected):
        warehouse = make_warehouse(db, tiers=((5.0, 9.0), (1.0, 4.0)), extra_kg_rate=1.5)

        assert WarehouseShippingCalculator.calculate(warehouse, weight) == expected

    def test_open_ended_tier(self, db):
        warehouse = make_warehouse(db, tiers=((1.0, 4.0), (None, 20.0)))

        assert WarehouseShippingCalculator.calculate(warehouse, 0.5) == 4.0
        assert WarehouseShippingCalculator.calculate(warehouse, 42.0) == 20.0

    def test_no_tiers_is_free(self, db):
        warehouse = make_warehouse(db, tiers=())

        assert WarehouseShippingCalculator.calculate(warehouse, 2.0) == 0.0
