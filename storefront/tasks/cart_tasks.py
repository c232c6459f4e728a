"""Cart pricing background tasks"""
import logging

from storefront.config.celery_config import celery_app
from storefront.config.database import SessionLocal
from storefront.core.exceptions import MissingDefaultWarehouseError
from storefront.models.cart import Cart
from storefront.services.cart.shipping_service import CartShippingService
from storefront.services.fulfillment.cj_client import CJDropshippingClient

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def recalculate_cart_shipping(self, cart_id: int):
    db = SessionLocal()
    try:
        cart = db.query(Cart).filter(Cart.id == cart_id).first()
        if not cart:
            logger.error(f"Cart not found: {cart_id}")
            return {"status": "failed", "reason": "cart_not_found"}

        total = CartShippingService(CJDropshippingClient()).calculate_shipping_fees(db, cart)
        return {"status": "success", "cart_id": cart_id, "shipping_total": total}

    except MissingDefaultWarehouseError as e:
        # Retrying cannot fix missing configuration
        logger.error(str(e))
        return {"status": "failed", "reason": "missing_default_warehouse"}

    except Exception as exc:
        db.rollback()
        logger.error(f"Shipping recalculation for cart {cart_id} failed: {exc}", exc_info=True)
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

    finally:
        db.close()
