"""Tests for order lookups, rule-based replies and the AI order snapshot"""
import pytest

from storefront.services.support.order_context_service import (
    OrderContextService,
    PAYMENT_GUIDANCE,
    REFUND_GUIDANCE,
    TRACKING_GUIDANCE,
    extract_order_number,
    generic_keyword_reply,
    tracking_status,
)
from tests.factories import days_ago, make_customer, make_order


class TestExtractOrderNumber:

    @pytest.mark.parametrize("text, expected", [
        ("My order is DS-0000000001, please check", "DS-0000000001"),
        ("order ds-abc123 never arrived", "DS-ABC123"),
        ("Reference SHOP-12345 please", "SHOP-12345"),
        ("it was #ab12cd34", "AB12CD34"),
        ("no reference here", None),
        ("#123", None),
        ("", None),
        (None, None),
    ])
    def test_examples(self, text, expected):
        assert extract_order_number(text) == expected


class TestGenericKeywordReply:

    @pytest.mark.parametrize("text, expected", [
        ("How do I track this?", TRACKING_GUIDANCE),
        ("Where is my order", TRACKING_GUIDANCE),
        ("I want to return it", REFUND_GUIDANCE),
        ("I was charged twice", PAYMENT_GUIDANCE),
        ("Hello there", None),
    ])
    def test_guidance(self, text, expected):
        assert generic_keyword_reply(text) == expected


class TestBuildOrderPaymentReply:

    def test_no_trigger_returns_none(self, db):
        customer = make_customer(db)
        assert OrderContextService.build_order_payment_reply(db, customer, "Do you ship to Canada?") is None

    def test_no_orders(self, db):
        customer = make_customer(db)

        reply = OrderContextService.build_order_payment_reply(db, customer, "Where is my delivery?")

        assert reply == (
            "I could not find any orders on your account yet. "
            "Please share your order number so I can check it for you."
        )

    def test_unknown_order_number_does_not_fall_back_to_latest(self, db):
        customer = make_customer(db)
        make_order(db, customer, number="DS-0000000002")

        reply = OrderContextService.build_order_payment_reply(db, customer, "What about DS-0000009999?")

        assert reply.startswith("I could not find order DS-0000009999 on your account.")

    def test_other_customers_orders_are_invisible(self, db):
        owner = make_customer(db)
        someone_else = make_customer(db)
        make_order(db, owner, number="DS-0000000003")

        reply = OrderContextService.build_order_payment_reply(db, someone_else, "DS-0000000003?")

        assert reply.startswith("I could not find order DS-0000000003")

    def test_latest_order_without_number(self, db):
        customer = make_customer(db)
        make_order(db, customer, number="DS-0000000010", placed_at=days_ago(10))
        make_order(db, customer, number="DS-0000000011", placed_at=days_ago(1), status="pending",
                   payment_status="unpaid", grand_total=12)

        reply = OrderContextService.build_order_payment_reply(db, customer, "payment question")

        assert reply == (
            "Latest update for order DS-0000000011: Pending. Payment: unpaid. "
            "Tracking: pending. Total: 12.00 USD."
        )


class TestTrackingStatus:

    def test_prefers_last_mile_then_linehaul_then_order(self, db):
        customer = make_customer(db)
        both = make_order(db, customer, delivery={"status": "Delivered"}, linehaul={"carrier_status": "Arrived"})
        linehaul_only = make_order(db, customer, linehaul={"carrier_status": "In customs"})
        neither = make_order(db, customer, status="processing")

        assert tracking_status(both) == "Delivered"
        assert tracking_status(linehaul_only) == "In customs"
        assert tracking_status(neither) == "processing"


class TestOrderContextSnapshot:

    def test_five_most_recent_with_referenced_first(self, db):
        customer = make_customer(db)
        oldest = make_order(db, customer, number="DS-0000000100", placed_at=days_ago(30))
        for day in range(5):
            make_order(db, customer, number=f"DS-000000020{day}", placed_at=days_ago(day))

        snapshot = OrderContextService.build_order_context_snapshot(db, customer, "what about DS-0000000100")

        assert len(snapshot) == 5
        assert snapshot[0]["order_number"] == oldest.number
        assert [s["order_number"] for s in snapshot[1:]] == [
            "DS-0000000200", "DS-0000000201", "DS-0000000202", "DS-0000000203",
        ]

    def test_summary_fields(self, db):
        customer = make_customer(db)
        make_order(
            db,
            customer,
            number="DS-0000000300",
            payment={"provider": "stripe", "status": "succeeded", "amount": 20, "provider_reference": "pi_9"},
            delivery={"status": "Out for delivery", "tracking_number": "LM1", "tracking_url": "https://t.example/LM1"},
        )

        summary = OrderContextService.build_order_context_snapshot(db, customer)[0]

        assert summary["tracking_number"] == "LM1"
        assert summary["tracking_url"] == "https://t.example/LM1"
        assert summary["latest_payment"]["provider"] == "stripe"
        assert summary["latest_payment"]["reference"] == "pi_9"
        assert summary["grand_total"] == 49.99
