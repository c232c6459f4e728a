"""Tests for the promotion engine and best-discount selection"""
import pytest

from storefront.services.promotions.campaign_manager import CampaignManager
from storefront.services.promotions.promotion_engine import PromotionEngine
from tests.factories import days_ago, make_cart, make_customer, make_order, make_product, make_promotion


def _context(subtotal, product_id=1, category_id=7, customer_id=None):
    return {
        "lines": [{"product_id": product_id, "category_id": category_id}],
        "subtotal": subtotal,
        "customer_id": customer_id,
    }


class TestPromotionEngine:

    def test_targets_must_match_cart_lines(self, db):
        make_promotion(db, name="Lamps", targets=[("category", 7)])
        make_promotion(db, name="Chairs", targets=[("category", 8)])
        make_promotion(db, name="Product 1", targets=[("product", 1)])
        make_promotion(db, name="Everything")

        names = {p.name for p in PromotionEngine.get_applicable_promotions(db, _context(100))}

        assert names == {"Lamps", "Product 1", "Everything"}

    def test_inactive_and_out_of_window_promotions_are_ignored(self, db):
        make_promotion(db, name="Off", is_active=False)
        make_promotion(db, name="Expired", ends_at=days_ago(1))
        make_promotion(db, name="Future", starts_at=days_ago(-3))
        make_promotion(db, name="Running", starts_at=days_ago(3), ends_at=days_ago(-3))

        names = [p.name for p in PromotionEngine.get_applicable_promotions(db, _context(100))]

        assert names == ["Running"]

    def test_min_cart_value(self, db):
        make_promotion(db, name="Big carts", conditions=[("min_cart_value", 80)])

        assert PromotionEngine.get_applicable_promotions(db, _context(79.99)) == []
        assert len(PromotionEngine.get_applicable_promotions(db, _context(80))) == 1

    def test_first_order_only(self, db):
        make_promotion(db, name="Welcome", conditions=[("first_order_only", 1)])
        returning = make_customer(db)
        make_order(db, returning, payment_status="paid")
        newcomer = make_customer(db)

        assert PromotionEngine.get_applicable_promotions(db, _context(50, customer_id=returning.id)) == []
        assert len(PromotionEngine.get_applicable_promotions(db, _context(50, customer_id=newcomer.id))) == 1
        assert len(PromotionEngine.get_applicable_promotions(db, _context(50))) == 1

    def test_stackable_promotions_add_up_with_cap(self, db):
        make_promotion(db, name="Ten percent", value=10, priority=5)
        make_promotion(db, name="Five off", value_type="fixed", value=5, conditions=[("max_discount", 3)])

        result = PromotionEngine.apply_promotions(db, _context(100))

        assert [d["label"] for d in result["discounts"]] == ["Ten percent", "Five off"]
        assert [d["amount"] for d in result["discounts"]] == [10.0, 3.0]
        assert result["total_discount"] == 13.0

    def test_exclusive_promotion_wins_alone(self, db):
        make_promotion(db, name="Stackable", value=30)
        make_promotion(db, name="Small exclusive", value=5, stacking_rule="exclusive")
        make_promotion(db, name="Large exclusive", value=20, stacking_rule="exclusive")

        result = PromotionEngine.apply_promotions(db, _context(100))

        assert [d["label"] for d in result["discounts"]] == ["Large exclusive"]
        assert result["total_discount"] == 20.0

    def test_urgency_exclusive_beats_larger_exclusive(self, db):
        make_promotion(db, name="Flash", value=5, intent="urgency", stacking_rule="exclusive")
        make_promotion(db, name="Large exclusive", value=20, stacking_rule="exclusive")

        result = PromotionEngine.apply_promotions(db, _context(100))

        assert [d["label"] for d in result["discounts"]] == ["Flash"]

    def test_total_never_exceeds_subtotal(self, db):
        make_promotion(db, name="Twenty off", value_type="fixed", value=20)
        make_promotion(db, name="Fifteen off", value_type="fixed", value=15)

        result = PromotionEngine.apply_promotions(db, _context(25))

        assert result["total_discount"] == 25.0


class TestCampaignManager:

    @pytest.fixture
    def manager(self, settings):
        return CampaignManager(settings)

    def _cart(self, db, customer, unit_price, quantity=1):
        product = make_product(db, price=unit_price, category_id=7)
        return make_cart(db, customer=customer, items=[(product, None, quantity, 1)])

    def test_first_order_discount_for_new_customer(self, db, manager):
        customer = make_customer(db)
        cart = self._cart(db, customer, 20, quantity=2)

        best = manager.best_for_cart(db, cart, customer)

        assert best.source == "first_order"
        assert best.amount == 4.0

    def test_tie_keeps_first_declared_candidate(self, db, manager):
        customer = make_customer(db)
        cart = self._cart(db, customer, 200)

        best = manager.best_for_cart(db, cart, customer)

        # first order: min(20, 10); high value: min(10, 15)
        assert best.source == "first_order"
        assert best.amount == 10.0

    def test_high_value_discount_wins_on_big_carts(self, db, manager):
        customer = make_customer(db)
        cart = self._cart(db, customer, 400)

        best = manager.best_for_cart(db, cart, customer)

        assert best.source == "high_value"
        assert best.amount == 15.0

    def test_promotion_labels_are_joined(self, db, manager):
        make_promotion(db, name="Spring Sale", value=50)
        make_promotion(db, name="Lamp Week", value=10, targets=[("category", 7)])
        customer = make_customer(db)
        make_order(db, customer, payment_status="paid")
        cart = self._cart(db, customer, 60)

        best = manager.best_for_cart(db, cart, customer)

        assert best.source == "promotion"
        assert best.label == "Spring Sale + Lamp Week"
        assert best.amount == 36.0
        assert len(best.breakdown) == 2

    def test_shipping_support_blocks_built_in_discounts(self, db, manager):
        make_promotion(db, name="Free shipping help", value_type="fixed", value=2, intent="shipping_support")
        customer = make_customer(db)
        cart = self._cart(db, customer, 300)

        best = manager.best_for_cart(db, cart, customer)

        assert best.source == "promotion"
        assert best.amount == 2.0

    def test_nothing_qualifies(self, db, manager):
        cart = self._cart(db, None, 10)

        assert manager.best_for_cart(db, cart, None) is None

    @pytest.mark.parametrize("subtotal, expected", [(40, 4.0), (99.99, 10.0), (250, 10.0)])
    def test_first_order_discount_is_capped(self, db, manager, subtotal, expected):
        customer = make_customer(db)
        assert manager.first_order_discount(db, customer, subtotal) == expected

    def test_first_order_discount_needs_no_paid_orders(self, db, manager):
        customer = make_customer(db)
        make_order(db, customer, payment_status="unpaid")
        assert manager.first_order_discount(db, customer, 40) == 4.0

        make_order(db, customer, payment_status="paid")
        assert manager.first_order_discount(db, customer, 40) is None

    def test_first_order_discount_needs_a_customer(self, db, manager):
        assert manager.first_order_discount(db, None, 40) is None

    @pytest.mark.parametrize("subtotal, expected", [(49.99, None), (50, 2.5), (1000, 15.0)])
    def test_high_value_discount(self, manager, subtotal, expected):
        assert manager.high_value_discount(subtotal) == expected
