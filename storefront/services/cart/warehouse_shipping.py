# storefront/services/cart/warehouse_shipping.py
"""Weight-tier pricing for the default local warehouse"""
import logging
import math

from storefront.models.warehouse import LocalWarehouse

logger = logging.getLogger(__name__)


class WarehouseShippingCalculator:

    @staticmethod
    def calculate(warehouse: LocalWarehouse, weight_kg: float) -> float:
        """
        Price a parcel of weight_kg.

        The lightest tier whose max weight covers the parcel wins; a tier
        without a max weight covers everything. Parcels heavier than every
        bounded tier pay the heaviest tier plus extra_kg_rate per started kg.
        """
        tiers = list(warehouse.shipping_tiers)
        if not tiers:
            logger.warning(f"Warehouse {warehouse.id} has no shipping tiers, charging 0.0")
            return 0.0

        weight_kg = max(0.0, float(weight_kg))

        bounded = sorted(
            (tier for tier in tiers if tier.max_weight_kg is not None),
            key=lambda tier: float(tier.max_weight_kg),
        )
        open_ended = [tier for tier in tiers if tier.max_weight_kg is None]

        for tier in bounded:
            if weight_kg <= float(tier.max_weight_kg):
                return round(float(tier.price), 2)

        if open_ended:
            return round(float(open_ended[0].price), 2)

        heaviest = bounded[-1]
        excess_kg = math.ceil(weight_kg - float(heaviest.max_weight_kg))
        extra_rate = float(warehouse.extra_kg_rate or 0)
        return round(float(heaviest.price) + excess_kg * extra_rate, 2)
