"""
Process-wide cache of the canonical (core) WAF rules.
"""
import asyncio
import logging
import time
from typing import Callable, List, Optional, Protocol

from waf_manager.exceptions.custom_exceptions import TemplateFetchError
from waf_manager.models.rules import WAFRule, WAFTemplate

logger = logging.getLogger(__name__)

RULES_CACHE_TTL = 5 * 60  # seconds


class CoreTemplateSource(Protocol):
    """Anything that can list core templates ordered by display order."""

    def fetch_core_templates(self) -> List[WAFTemplate]:
        ...


class RuleTemplateCache:
    """
    Holds the canonical rule set loaded from the template store.

    The cache refetches when empty or older than the TTL, and is emptied
    explicitly before every write so reconciliation uses fresh templates.
    """

    def __init__(self, store: CoreTemplateSource, ttl: float = RULES_CACHE_TTL,
                 clock: Callable[[], float] = time.monotonic):
        self._store = store
        self.ttl = ttl
        self._clock = clock
        self._rules: List[WAFRule] = []
        self._last_fetched_at: Optional[float] = None

    @property
    def last_fetched_at(self) -> Optional[float]:
        return self._last_fetched_at

    def is_stale(self) -> bool:
        if not self._rules or self._last_fetched_at is None:
            return True
        return self._clock() - self._last_fetched_at > self.ttl

    async def get_rules(self) -> List[WAFRule]:
        """
        Return the canonical rules, refreshing from the store if needed.

        Returns:
            Rules in display order

        Raises:
            TemplateFetchError: If the store cannot be read
        """
        if self.is_stale():
            now = self._clock()
            try:
                templates = await asyncio.to_thread(self._store.fetch_core_templates)
            except Exception as e:
                self.invalidate()
                logger.error(f"Error fetching WAF templates: {str(e)}")
                raise TemplateFetchError(f"Failed to load WAF templates: {str(e)}") from e
            self._rules = [template.to_rule() for template in templates]
            self._last_fetched_at = now
            logger.info(f"Loaded {len(self._rules)} core WAF rules into cache")
        return list(self._rules)

    def invalidate(self):
        """Drop cached rules so the next read goes to the store."""
        self._rules = []
        self._last_fetched_at = None
        logger.debug("WAF rule cache invalidated")
