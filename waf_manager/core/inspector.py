"""
Best-effort lookups of DNS records and SSL/TLS settings for a zone.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from waf_manager.core.cloudflare_api import CloudflareAPI
from waf_manager.models.rules import DNSRecord, SecuritySettings

logger = logging.getLogger(__name__)


def _setting_value(data: Dict[str, Any]) -> Optional[str]:
    if not isinstance(data, dict) or not data.get("success"):
        return None
    return (data.get("result") or {}).get("value")


async def get_dns_records(api: CloudflareAPI, zone_id: str) -> List[DNSRecord]:
    """A and CNAME records of the zone, or an empty list on failure."""
    try:
        records = await api.list_dns_records(zone_id)
        return [
            DNSRecord(
                id=record["id"],
                type=record["type"],
                name=record["name"],
                content=record["content"],
                proxied=bool(record.get("proxied")),
            )
            for record in records
        ]
    except Exception as e:
        logger.error(f"Error fetching DNS records for zone {zone_id}: {str(e)}")
        return []


async def get_security_settings(api: CloudflareAPI, zone_id: str) -> SecuritySettings:
    """SSL mode and minimum TLS version, left unset when unavailable."""
    try:
        ssl_data, tls_data = await asyncio.gather(
            api.get_zone_setting(zone_id, "ssl"),
            api.get_zone_setting(zone_id, "min_tls_version"),
        )
    except Exception as e:
        logger.error(f"Error fetching security settings for zone {zone_id}: {str(e)}")
        return SecuritySettings()

    return SecuritySettings(
        ssl_mode=_setting_value(ssl_data),
        min_tls_version=_setting_value(tls_data),
    )
