"""
Thin facade over the Cloudflare v4 REST endpoints used by the manager.
"""
import logging
from typing import List, Dict, Any, Optional

from waf_manager.core.http_client import RetryingClient
from waf_manager.exceptions.custom_exceptions import CloudflareAPIError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.cloudflare.com/client/v4"
CUSTOM_FIREWALL_PHASE = "http_request_firewall_custom"


def ensure_success(data: Dict[str, Any], fallback: str) -> Dict[str, Any]:
    """Raise CloudflareAPIError unless the envelope reports success."""
    if not isinstance(data, dict) or not data.get("success"):
        errors = data.get("errors") if isinstance(data, dict) else None
        message = fallback
        if errors and isinstance(errors[0], dict) and errors[0].get("message"):
            message = errors[0]["message"]
        raise CloudflareAPIError(message, errors)
    return data


class CloudflareAPI:
    """Cloudflare calls authenticated with the caller's email and global key."""

    def __init__(self, client: RetryingClient, email: str, api_key: str,
                 base_url: str = DEFAULT_API_BASE):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "X-Auth-Email": email,
            "X-Auth-Key": api_key,
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def entrypoint_url(self, zone_id: str) -> str:
        return self._url(f"/zones/{zone_id}/rulesets/phases/{CUSTOM_FIREWALL_PHASE}/entrypoint")

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug(f"CF API: GET {path}")
        return await self.client.request_json("GET", self._url(path), headers=self.headers, params=params)

    async def list_zones(self, account_id: str, page: int = 1, per_page: int = 50,
                         search: str = "") -> Dict[str, Any]:
        """List the zones of an account, optionally filtered by name."""
        params = {"account.id": account_id, "page": page, "per_page": per_page}
        if search:
            params["name"] = search
        data = await self._get("/zones", params=params)
        return ensure_success(data, "Failed to fetch zones")

    async def get_entrypoint_ruleset(self, zone_id: str) -> Dict[str, Any]:
        """Fetch the zone's custom firewall entrypoint ruleset."""
        logger.debug(f"CF API: GET custom ruleset for zone {zone_id}")
        data = await self.client.request_json("GET", self.entrypoint_url(zone_id), headers=self.headers)
        return ensure_success(data, "Failed to fetch zone rules").get("result") or {}

    async def put_entrypoint_rules(self, zone_id: str, rules: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Overwrite the rules of the zone's entrypoint ruleset; returns the raw envelope."""
        logger.debug(f"CF API: PUT {len(rules)} rules to zone {zone_id}")
        return await self.client.request_json(
            "PUT", self.entrypoint_url(zone_id), headers=self.headers, json={"rules": rules}
        )

    async def create_ruleset(self, zone_id: str, name: str, description: str,
                             rules: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Create a zone ruleset bound to the custom firewall phase; returns the raw envelope."""
        logger.debug(f"CF API: POST ruleset '{name}' to zone {zone_id}")
        body = {
            "name": name,
            "kind": "zone",
            "phase": CUSTOM_FIREWALL_PHASE,
            "description": description,
            "rules": rules,
        }
        return await self.client.request_json(
            "POST", self._url(f"/zones/{zone_id}/rulesets"), headers=self.headers, json=body
        )

    async def list_dns_records(self, zone_id: str, record_types: str = "A,CNAME") -> List[Dict[str, Any]]:
        data = await self._get(f"/zones/{zone_id}/dns_records", params={"type": record_types})
        return ensure_success(data, "Failed to fetch DNS records").get("result") or []

    async def update_dns_record(self, zone_id: str, record_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Replace a DNS record; returns the raw envelope."""
        logger.debug(f"CF API: PUT DNS record {record_id} in zone {zone_id}")
        return await self.client.request_json(
            "PUT", self._url(f"/zones/{zone_id}/dns_records/{record_id}"), headers=self.headers, json=record
        )

    async def get_zone_setting(self, zone_id: str, setting: str) -> Dict[str, Any]:
        """Fetch a single zone setting envelope (ssl, min_tls_version, ...)."""
        return await self._get(f"/zones/{zone_id}/settings/{setting}")
