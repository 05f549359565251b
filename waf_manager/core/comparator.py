"""
Zone rule comparison against the canonical template set.
"""
import logging
from typing import List, Dict, Any

from waf_manager.core.cloudflare_api import CloudflareAPI
from waf_manager.core.rule_cache import RuleTemplateCache
from waf_manager.exceptions.custom_exceptions import RequestError
from waf_manager.models.rules import SyncStatus, WAFRule

logger = logging.getLogger(__name__)


def compare_rules(live_rules: List[WAFRule], expected_rules: List[WAFRule]) -> SyncStatus:
    """
    Decide whether a zone's live rules match the expected rules.

    Every expected rule must appear in the live rules with the same
    description, expression and action; ids and positions are ignored.
    A zone holding more rules than expected is out of sync as well.

    Args:
        live_rules: Rules currently deployed on the zone
        expected_rules: Canonical rules

    Returns:
        SyncStatus.IN_SYNC or SyncStatus.OUT_OF_SYNC
    """
    for expected in expected_rules:
        if not any(live.matches(expected) for live in live_rules):
            logger.debug(f"Missing expected rule: {expected.description}")
            return SyncStatus.OUT_OF_SYNC

    # Count only: a same-size set holding an unknown rule in place of a
    # duplicate expected rule still passes.
    if len(live_rules) > len(expected_rules):
        logger.debug(f"Zone has {len(live_rules)} rules, expected {len(expected_rules)}")
        return SyncStatus.OUT_OF_SYNC

    return SyncStatus.IN_SYNC


class ZoneRuleComparator:
    """Computes the SyncStatus of zones on demand."""

    def __init__(self, cache: RuleTemplateCache):
        self.cache = cache

    async def fetch_live_rules(self, api: CloudflareAPI, zone_id: str) -> List[WAFRule]:
        try:
            ruleset = await api.get_entrypoint_ruleset(zone_id)
        except RequestError as e:
            if e.status == 404:
                # no custom ruleset created on the zone yet
                return []
            raise
        raw_rules: List[Dict[str, Any]] = ruleset.get("rules") or []
        return [WAFRule.model_validate(rule) for rule in raw_rules]

    async def check_zone_rules(self, api: CloudflareAPI, zone_id: str) -> SyncStatus:
        """
        Fetch live and canonical rules and compare them.

        Any failure yields SyncStatus.ERROR, which means the status could
        not be determined rather than a confirmed mismatch.
        """
        try:
            live_rules = await self.fetch_live_rules(api, zone_id)
            expected_rules = await self.cache.get_rules()
            status = compare_rules(live_rules, expected_rules)
        except Exception as e:
            logger.error(f"Error checking zone rules for {zone_id}: {str(e)}")
            return SyncStatus.ERROR

        logger.debug(f"Zone {zone_id} WAF status: {status.value}")
        return status
