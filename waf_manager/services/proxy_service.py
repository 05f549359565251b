"""
Cloudflare proxy service: dispatches proxy actions to the WAF components.
"""
import asyncio
import logging
from typing import Dict, Any, Callable, Awaitable

from waf_manager.core.cloudflare_api import CloudflareAPI, DEFAULT_API_BASE
from waf_manager.core.comparator import ZoneRuleComparator
from waf_manager.core.http_client import RetryingClient
from waf_manager.core.inspector import get_dns_records, get_security_settings
from waf_manager.core.reconciler import RuleReconciler
from waf_manager.core.rule_cache import RuleTemplateCache
from waf_manager.models.requests import (
    ProxyRequest,
    CloudflareCredentials,
    ListZonesRequest,
    UpdateDnsProxyRequest,
    ApplyRulesRequest,
    ResyncRulesRequest,
    DisableWafRequest,
)

logger = logging.getLogger(__name__)


class ProxyService:
    """Handles one parsed proxy request and builds its response body."""

    def __init__(
        self,
        client: RetryingClient,
        cache: RuleTemplateCache,
        product_name: str = "WAFManager Pro",
        api_base: str = DEFAULT_API_BASE,
    ):
        self.client = client
        self.cache = cache
        self.api_base = api_base
        self.comparator = ZoneRuleComparator(cache)
        self.reconciler = RuleReconciler(cache, product_name=product_name)
        self._handlers: Dict[type, Callable[[Any], Awaitable[Dict[str, Any]]]] = {
            ListZonesRequest: self.list_zones,
            UpdateDnsProxyRequest: self.update_dns_proxy,
            ApplyRulesRequest: self.apply_rules,
            ResyncRulesRequest: self.resync_rules,
            DisableWafRequest: self.disable_waf,
        }

    def api_for(self, credentials: CloudflareCredentials) -> CloudflareAPI:
        return CloudflareAPI(self.client, credentials.email, credentials.api_key, base_url=self.api_base)

    async def handle(self, request: ProxyRequest) -> Dict[str, Any]:
        """
        Run the handler registered for the request variant.

        Args:
            request: Parsed proxy request

        Returns:
            JSON-serializable response body
        """
        handler = self._handlers[type(request)]
        logger.info(f"Handling proxy action {type(request).__name__} for {request.email}")
        return await handler(request)

    async def list_zones(self, request: ListZonesRequest) -> Dict[str, Any]:
        """List zones and attach WAF status, DNS records and security settings."""
        api = self.api_for(request)
        data = await api.list_zones(request.account_id, request.page, request.per_page, request.search)
        zones = data.get("result") or []
        logger.info(f"Fetched {len(zones)} zones for account {request.account_id}")

        data["result"] = list(await asyncio.gather(*(self._describe_zone(api, zone) for zone in zones)))
        return data

    async def _describe_zone(self, api: CloudflareAPI, zone: Dict[str, Any]) -> Dict[str, Any]:
        waf_status, dns_records, security_settings = await asyncio.gather(
            self.comparator.check_zone_rules(api, zone["id"]),
            get_dns_records(api, zone["id"]),
            get_security_settings(api, zone["id"]),
        )
        return {
            **zone,
            "wafStatus": waf_status.value,
            "dnsRecords": [record.model_dump() for record in dns_records],
            "securitySettings": security_settings.model_dump(exclude_none=True),
        }

    async def update_dns_proxy(self, request: UpdateDnsProxyRequest) -> Dict[str, Any]:
        """Toggle the proxied flag of a DNS record; returns Cloudflare's envelope."""
        api = self.api_for(request)
        record = {**request.record, "proxied": request.proxied}
        logger.info(f"Setting proxied={request.proxied} on record {request.record_id} in zone {request.zone_id}")
        return await api.update_dns_record(request.zone_id, request.record_id, record)

    async def apply_rules(self, request: ApplyRulesRequest) -> Dict[str, Any]:
        results = await self.reconciler.apply_rules(self.api_for(request), request.target_zones)
        return {"success": True, "results": [result.model_dump(by_alias=True, exclude_none=True) for result in results]}

    async def resync_rules(self, request: ResyncRulesRequest) -> Dict[str, Any]:
        results = await self.reconciler.resync_rules(self.api_for(request), request.target_zones)
        return {"success": True, "results": [result.model_dump(by_alias=True, exclude_none=True) for result in results]}

    async def disable_waf(self, request: DisableWafRequest) -> Dict[str, Any]:
        success = await self.reconciler.disable_waf(self.api_for(request), request.zone_id)
        return {"success": success}
