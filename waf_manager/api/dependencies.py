"""
Process-wide components shared by the API routes.
"""
import logging
from typing import Optional

from config import settings
from waf_manager.core.http_client import RetryingClient, RetryPolicy
from waf_manager.core.rule_cache import RuleTemplateCache
from waf_manager.services.proxy_service import ProxyService
from waf_manager.utils.database import TemplateDatabase

logger = logging.getLogger(__name__)

_template_db: Optional[TemplateDatabase] = None
_rule_cache: Optional[RuleTemplateCache] = None
_proxy_service: Optional[ProxyService] = None


def get_template_db() -> TemplateDatabase:
    global _template_db
    if _template_db is None:
        logger.info(f"Opening template database at {settings.TEMPLATE_DB_PATH}")
        _template_db = TemplateDatabase(settings.TEMPLATE_DB_PATH)
    return _template_db


def get_rule_cache() -> RuleTemplateCache:
    global _rule_cache
    if _rule_cache is None:
        _rule_cache = RuleTemplateCache(get_template_db(), ttl=settings.RULES_CACHE_TTL)
    return _rule_cache


def get_proxy_service() -> ProxyService:
    global _proxy_service
    if _proxy_service is None:
        policy = RetryPolicy(
            max_attempts=settings.RETRY_ATTEMPTS,
            base_delay=settings.RETRY_DELAY,
            multiplier=settings.RETRY_BACKOFF,
        )
        _proxy_service = ProxyService(
            RetryingClient(policy=policy, timeout=settings.HTTP_TIMEOUT),
            get_rule_cache(),
            product_name=settings.PRODUCT_NAME,
            api_base=settings.CLOUDFLARE_API_BASE,
        )
        logger.info("Cloudflare proxy service initialized")
    return _proxy_service


async def close_proxy_service():
    """Release the shared HTTP client on shutdown."""
    global _proxy_service
    if _proxy_service is not None:
        await _proxy_service.client.aclose()
        _proxy_service = None
