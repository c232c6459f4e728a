# storefront/services/fulfillment/cj_client.py
"""HTTP client for the CJ Dropshipping logistics API"""
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from storefront.config.settings import Settings, get_settings
from storefront.core.exceptions import FreightServiceError
from storefront.schemas.cart import FreightQuoteResponse

logger = logging.getLogger(__name__)

FREIGHT_CALCULATE_PATH = "/logistic/freightCalculate"


class CJDropshippingClient:
    """Freight quotes from the dropshipping supplier"""

    def __init__(self, settings: Optional[Settings] = None, http_client: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self._http = http_client

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(
                base_url=self.settings.CJ_API_BASE_URL.rstrip("/"),
                timeout=self.settings.CJ_TIMEOUT,
            )
        return self._http

    def _headers(self) -> Dict[str, str]:
        return {
            "CJ-Access-Token": self.settings.CJ_ACCESS_TOKEN,
            "Content-Type": "application/json",
        }

    def freight_calculate(self, payload: Dict[str, Any]) -> FreightQuoteResponse:
        """
        Quote carrier options for a set of supplier variants.

        payload: {startCountryCode, endCountryCode, products: [{quantity, vid}]}
        """
        try:
            response = self.http.post(FREIGHT_CALCULATE_PATH, json=payload, headers=self._headers())
            response.raise_for_status()
            quote = FreightQuoteResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise FreightServiceError(
                f"Freight quote failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FreightServiceError(f"Freight quote request failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise FreightServiceError(f"Freight quote response is not valid: {e}") from e

        if quote.result is False:
            raise FreightServiceError(quote.message or "Freight quote was rejected.")

        logger.debug(
            f"Freight quote {payload.get('startCountryCode')}->{payload.get('endCountryCode')}: "
            f"{len(quote.data)} option(s)"
        )
        return quote
