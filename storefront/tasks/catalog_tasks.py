"""Catalog background tasks: sync claims and content translation"""
import logging

from storefront.config.celery_config import celery_app
from storefront.config.database import SessionLocal
from storefront.config.redis import get_redis
from storefront.models.catalog import Product
from storefront.services.ai.deepseek_client import create_deepseek_client
from storefront.services.ai.translation_service import ContentTranslationService
from storefront.services.catalog.claim_service import ProductClaimService

logger = logging.getLogger(__name__)

TRANSLATABLE_PRODUCT_FIELDS = ("name", "description")


@celery_app.task
def release_catalog_claims_for_owner(owner: str):
    """Crash recovery: drop every catalog claim held by a worker"""
    released = ProductClaimService(get_redis()).release_all_for_owner(owner)
    return {"status": "success", "owner": owner, "released": released}


def apply_product_translation(db, product: Product, service: ContentTranslationService,
                              source_locale: str = "en", target_locale: str = "fr") -> dict:
    """Store safe translations of the product's text fields under translations[target_locale]"""
    fields = {field: getattr(product, field) for field in TRANSLATABLE_PRODUCT_FIELDS}
    updates = service.safe_translation_updates(fields, source_locale, target_locale)
    if not updates:
        return {}

    translations = dict(product.translations or {})
    locale_fields = dict(translations.get(target_locale) or {})
    locale_fields.update(updates)
    translations[target_locale] = locale_fields
    # Reassign so the JSON column is flagged dirty
    product.translations = translations
    db.commit()
    return updates


@celery_app.task(bind=True, max_retries=3)
def translate_product_content(self, product_id: int, source_locale: str = "en", target_locale: str = "fr"):
    db = SessionLocal()
    try:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            logger.error(f"Product not found for translation: {product_id}")
            return {"status": "failed", "reason": "product_not_found"}

        client = create_deepseek_client(redis_client=get_redis())
        if not client.is_configured:
            logger.warning("DeepSeek is not configured, skipping product translation")
            return {"status": "skipped", "reason": "ai_not_configured"}

        updates = apply_product_translation(
            db, product, ContentTranslationService(client), source_locale, target_locale
        )
        logger.info(f"Translated {len(updates)} field(s) of product {product_id} to {target_locale}")
        return {"status": "success", "product_id": product_id, "fields": sorted(updates)}

    except Exception as exc:
        db.rollback()
        logger.error(f"Translation of product {product_id} failed: {exc}", exc_info=True)
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

    finally:
        db.close()
