# storefront/services/cart/cart_service.py
from typing import Any, Dict

from storefront.models.cart import Cart, CartItem


class CartService:
    """Price helpers shared by shipping and discount calculation"""

    @staticmethod
    def unit_price(item: CartItem) -> float:
        """Variant price when a variant is selected, else the product price"""
        if item.variant is not None and item.variant.price is not None:
            return float(item.variant.price)
        if item.product is not None:
            return float(item.product.price or 0)
        return 0.0

    @staticmethod
    def subtotal(cart: Cart) -> float:
        return round(
            sum(item.quantity * CartService.unit_price(item) for item in cart.items),
            2,
        )

    @staticmethod
    def cart_context(cart: Cart) -> Dict[str, Any]:
        """Cart shape consumed by the promotion engine"""
        return {
            "lines": [
                {
                    "product_id": item.product_id,
                    "category_id": item.product.category_id if item.product is not None else None,
                    "quantity": item.quantity,
                    "unit_price": CartService.unit_price(item),
                }
                for item in cart.items
            ],
            "subtotal": CartService.subtotal(cart),
            "customer_id": cart.customer_id,
        }
