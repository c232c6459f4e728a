# storefront/services/cart/shipping_service.py
"""
Cart shipping fee calculation.

Every call rebuilds the cart's CartShipping rows from scratch: one row per
supplier freight quote plus one aggregate row priced by the default
warehouse's weight tiers.
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.config.settings import Settings, get_settings
from storefront.core.exceptions import FreightServiceError, MissingDefaultWarehouseError
from storefront.models.cart import Cart, CartItem, CartShipping
from storefront.models.warehouse import LocalWarehouse
from storefront.services.cart.warehouse_shipping import WarehouseShippingCalculator

logger = logging.getLogger(__name__)


def parse_weight_grams(value: Any) -> Optional[float]:
    """
    Weight in grams from a supplier field.

    Accepts numbers, numeric strings and "low-high" ranges (upper bound wins).
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None

    text = str(value).strip()
    if not text:
        return None

    if "-" in text:
        text = text.rsplit("-", 1)[-1].strip()

    try:
        grams = float(text)
    except ValueError:
        return None

    return grams if grams > 0 else None


def item_unit_weight_grams(item: CartItem) -> float:
    """packingWeight, then productWeight, then variantWeight for variant lines"""
    product_payload = (item.product.supplier_payload if item.product is not None else None) or {}

    for key in ("packingWeight", "productWeight"):
        grams = parse_weight_grams(product_payload.get(key))
        if grams is not None:
            return grams

    if item.variant_id is not None and item.variant is not None:
        grams = parse_weight_grams((item.variant.supplier_payload or {}).get("variantWeight"))
        if grams is not None:
            return grams

    logger.debug(f"Cart item {item.id} has no usable weight, counting 0g")
    return 0.0


class CartShippingService:
    """Computes and persists shipping quotes for a cart"""

    def __init__(self, freight_client, settings: Optional[Settings] = None):
        self.freight_client = freight_client
        self.settings = settings or get_settings()

    def calculate_shipping_fees(self, db: Session, cart: Cart) -> float:
        """Replace the cart's shipping rows and return the summed logistic price"""
        warehouse = LocalWarehouse.default(db)
        if warehouse is None:
            raise MissingDefaultWarehouseError(
                f"Cannot price shipping for cart {cart.id}: no default warehouse is configured."
            )

        db.query(CartShipping).filter(CartShipping.cart_id == cart.id).delete(synchronize_session="fetch")

        items = list(cart.items)

        for provider_id, provider_items in self._group_by_provider(items).items():
            if provider_id == self.settings.CJ_PROVIDER_ID:
                self._add_supplier_quote(db, cart, warehouse, provider_id, provider_items)

        self._add_warehouse_line(db, cart, warehouse, items)

        db.commit()

        total = db.query(
            func.coalesce(func.sum(CartShipping.logistic_price), 0)
        ).filter(CartShipping.cart_id == cart.id).scalar()

        total = round(float(total or 0), 2)
        logger.info(f"Cart {cart.id} shipping total: {total:.2f}")
        return total

    @staticmethod
    def _group_by_provider(items: List[CartItem]) -> "OrderedDict[Optional[int], List[CartItem]]":
        groups: "OrderedDict[Optional[int], List[CartItem]]" = OrderedDict()
        for item in items:
            groups.setdefault(item.fulfillment_provider_id, []).append(item)
        return groups

    def build_freight_payload(self, warehouse: LocalWarehouse, items: List[CartItem]) -> Dict[str, Any]:
        return {
            "startCountryCode": self.settings.CJ_ORIGIN_COUNTRY,
            "endCountryCode": warehouse.country or self.settings.CJ_FALLBACK_DESTINATION_COUNTRY,
            "products": [
                {
                    "quantity": item.quantity or 1,
                    "vid": self._supplier_id(item),
                }
                for item in items
            ],
        }

    @staticmethod
    def _supplier_id(item: CartItem) -> Optional[str]:
        if item.variant_id is not None and item.variant is not None:
            return item.variant.cj_vid
        return item.product.cj_pid if item.product is not None else None

    def _add_supplier_quote(
            self,
            db: Session,
            cart: Cart,
            warehouse: LocalWarehouse,
            provider_id: int,
            items: List[CartItem],
    ) -> Optional[CartShipping]:
        payload = self.build_freight_payload(warehouse, items)

        try:
            quote = self.freight_client.freight_calculate(payload)
        except FreightServiceError as e:
            logger.warning(f"Skipping supplier shipping for cart {cart.id} (provider {provider_id}): {e}")
            return None

        option = quote.cheapest()
        if option is None:
            logger.warning(f"No carrier options returned for cart {cart.id} (provider {provider_id})")
            return None

        line = CartShipping(
            cart_id=cart.id,
            provider_id=provider_id,
            logistic_name=option.logistic_name,
            logistic_price=option.logistic_price,
            total_postage_fee=option.total_postage_fee,
            aging=option.logistic_aging,
        )
        db.add(line)
        return line

    def _add_warehouse_line(
            self,
            db: Session,
            cart: Cart,
            warehouse: LocalWarehouse,
            items: List[CartItem],
    ) -> CartShipping:
        total_grams = sum(item_unit_weight_grams(item) * (item.quantity or 0) for item in items)
        weight_kg = total_grams / 1000.0
        price = WarehouseShippingCalculator.calculate(warehouse, weight_kg)

        line = CartShipping(
            cart_id=cart.id,
            provider_id=None,
            logistic_name=warehouse.carrier_name,
            logistic_price=price,
        )
        db.add(line)

        logger.debug(f"Cart {cart.id} domestic shipping: {weight_kg:.3f}kg -> {price:.2f}")
        return line
