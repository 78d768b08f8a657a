import requests
import asyncio
import logging
from typing import Any, Dict, Optional
from nicegui import run

from src.core import config_manager
from src.core.models import (
    LookupOutcome, NO_NAME_FALLBACK, ProductIdentifier, ProductRecord
)
from src.core.utils import capitalize_first_letter, non_empty_text, strip_language_prefix

logger = logging.getLogger(__name__)

API_PATH = "/api/v3/product/{identifier}.json"

def derive_origin_label(product: Dict[str, Any]) -> Optional[str]:
    """
    Picks a display origin for a product, in order:
    origins, manufacturing_places, first countries_tags entry ("en:france" -> "France").
    Returns None when the product carries no country signal at all.
    """
    origins = non_empty_text(product.get('origins'))
    if origins:
        return origins

    places = non_empty_text(product.get('manufacturing_places'))
    if places:
        return places

    tags = product.get('countries_tags')
    if isinstance(tags, list) and tags:
        first = tags[0]
        if isinstance(first, str):
            label = capitalize_first_letter(strip_language_prefix(first.strip()))
            if label:
                return label

    return None

def parse_product(identifier: str, product: Dict[str, Any]) -> ProductRecord:
    return ProductRecord(
        identifier=identifier,
        name=non_empty_text(product.get('product_name')) or NO_NAME_FALLBACK,
        image_url=non_empty_text(product.get('image_front_url')),
        origin_label=derive_origin_label(product),
    )

class OpenFoodFactsService:
    def __init__(self, host: Optional[str] = None, user_agent: Optional[str] = None, timeout: Optional[float] = None):
        config = config_manager.load_config()
        self.host = host or config.get("lookup_host") or config_manager.DEFAULT_CONFIG["lookup_host"]
        self.user_agent = user_agent or config.get("user_agent") or config_manager.DEFAULT_CONFIG["user_agent"]
        self.timeout = timeout if timeout is not None else config.get("lookup_timeout")

    def product_url(self, identifier: ProductIdentifier) -> str:
        return f"https://{self.host}{API_PATH.format(identifier=identifier.value)}"

    async def _get(self, url: str) -> requests.Response:
        kwargs = {"headers": {"User-Agent": self.user_agent}, "timeout": self.timeout}
        try:
            return await run.io_bound(requests.get, url, **kwargs)
        except RuntimeError:
            # Fallback for environments without the NiceGUI loop (tests, scripts)
            return await asyncio.to_thread(requests.get, url, **kwargs)

    async def lookup(self, identifier: ProductIdentifier) -> LookupOutcome:
        """Single request for one product. Never retries; failures come back as TransientError."""
        url = self.product_url(identifier)
        logger.info(f"Looking up product {identifier.value}")

        try:
            response = await self._get(url)
        except requests.RequestException as e:
            logger.error(f"Open Food Facts request failed for {identifier.value}: {e}")
            return LookupOutcome.transient_error(f"request failed: {e}")

        if response is None:
            # run.io_bound returns None while the app is shutting down
            return LookupOutcome.transient_error("request cancelled")

        if response.status_code != 200:
            logger.error(f"Open Food Facts API Error. Status: {response.status_code}")
            return LookupOutcome.transient_error(f"status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Malformed Open Food Facts payload for {identifier.value}: {e}")
            return LookupOutcome.transient_error(f"malformed payload: {e}")

        if not isinstance(data, dict):
            return LookupOutcome.transient_error("malformed payload: expected a JSON object")

        product = data.get('product')
        if product is None:
            logger.warning(f"No product data available from Open Food Facts for {identifier.value}")
            return LookupOutcome.not_found()

        if not isinstance(product, dict):
            return LookupOutcome.transient_error("malformed payload: product is not an object")

        record = parse_product(identifier.value, product)
        logger.info(f"Resolved {identifier.value}: {record.name} ({record.origin_label or 'unknown origin'})")
        return LookupOutcome.found(record)

off_service = OpenFoodFactsService()
