"""
Reconciliation of zone custom rulesets with the canonical rules.
"""
import asyncio
import logging
from typing import List, Dict, Any

from waf_manager.core.cloudflare_api import CloudflareAPI
from waf_manager.core.rule_cache import RuleTemplateCache
from waf_manager.exceptions.custom_exceptions import RequestError, WAFManagerError
from waf_manager.models.rules import WAFRule, ZoneResult

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_NAME = "WAFManager Pro"


def build_rule_payload(rules: List[WAFRule]) -> List[Dict[str, Any]]:
    """Enable every rule and pin its position to the template order."""
    return [rule.to_payload(position=index + 1) for index, rule in enumerate(rules)]


class RuleReconciler:
    """Applies, resyncs and disables the canonical rules on zones."""

    def __init__(self, cache: RuleTemplateCache, product_name: str = DEFAULT_PRODUCT_NAME):
        self.cache = cache
        self.product_name = product_name

    @property
    def ruleset_name(self) -> str:
        return f"{self.product_name} Rules"

    async def apply_rules_to_zone(self, api: CloudflareAPI, zone_id: str, rules: List[WAFRule]) -> bool:
        """
        Overwrite a zone's entrypoint ruleset with the given rules.

        Falls back to creating the ruleset when the zone does not have one.

        Raises:
            WAFManagerError: If neither the update nor the create succeeded
        """
        payload = build_rule_payload(rules)
        try:
            update_data = await api.put_entrypoint_rules(zone_id, payload)
        except RequestError as e:
            if e.status != 404:
                raise
            update_data = {"success": False}

        if update_data.get("success"):
            logger.info(f"Updated {len(payload)} rules on zone {zone_id}")
            return True

        logger.info(f"No custom ruleset on zone {zone_id}, creating '{self.ruleset_name}'")
        create_data = await api.create_ruleset(
            zone_id,
            name=self.ruleset_name,
            description=f"Custom WAF rules managed by {self.product_name}",
            rules=payload,
        )
        if not create_data.get("success"):
            raise WAFManagerError("Failed to create and apply rules")
        logger.info(f"Created ruleset with {len(payload)} rules on zone {zone_id}")
        return True

    async def _reconcile_zone(self, api: CloudflareAPI, zone_id: str, rules: List[WAFRule]) -> ZoneResult:
        logger.info(f"Processing zone {zone_id}")
        try:
            success = await self.apply_rules_to_zone(api, zone_id, rules)
            return ZoneResult(zone_id=zone_id, success=success)
        except Exception as e:
            logger.error(f"Error applying rules to zone {zone_id}: {str(e)}")
            return ZoneResult(zone_id=zone_id, success=False, error=str(e) or "Unknown error")

    async def apply_rules(self, api: CloudflareAPI, zone_ids: List[str]) -> List[ZoneResult]:
        """
        Apply the canonical rules to each zone independently.

        Args:
            api: Authenticated Cloudflare API
            zone_ids: Zones to reconcile

        Returns:
            One ZoneResult per zone id; a zone failure never affects the others

        Raises:
            TemplateFetchError: If the canonical rules cannot be loaded
        """
        self.cache.invalidate()
        rules = await self.cache.get_rules()
        logger.info(f"Applying {len(rules)} rules to {len(zone_ids)} zone(s)")

        results = await asyncio.gather(
            *(self._reconcile_zone(api, zone_id, rules) for zone_id in zone_ids)
        )
        failed = sum(1 for result in results if not result.success)
        if failed:
            logger.warning(f"Rule application failed on {failed} of {len(results)} zone(s)")
        return list(results)

    async def resync_rules(self, api: CloudflareAPI, zone_ids: List[str]) -> List[ZoneResult]:
        """Resync is a full overwrite, same as apply."""
        return await self.apply_rules(api, zone_ids)

    async def disable_waf(self, api: CloudflareAPI, zone_id: str) -> bool:
        """Clear every custom rule from the zone's entrypoint ruleset."""
        logger.info(f"Disabling WAF rules on zone {zone_id}")
        data = await api.put_entrypoint_rules(zone_id, [])
        success = bool(data.get("success"))
        if not success:
            logger.warning(f"Cloudflare refused to clear rules on zone {zone_id}")
        return success
