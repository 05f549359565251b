"""
Data models for WAF rules, templates and zone state.
"""
from enum import Enum
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class SyncStatus(str, Enum):
    """Sync state of a zone's custom ruleset against the core templates."""
    IN_SYNC = "in-sync"
    OUT_OF_SYNC = "out-of-sync"
    ERROR = "error"


class WAFRule(BaseModel):
    """A custom firewall rule as Cloudflare stores it."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    description: Optional[str] = None  # optional on rules added in the dashboard
    expression: Optional[str] = None
    action: str  # skip, block, managed_challenge, challenge, js_challenge, log
    action_parameters: Optional[Dict[str, Any]] = None
    enabled: Optional[bool] = None
    position: Optional[int] = None  # 1-based, first match wins

    def matches(self, other: "WAFRule") -> bool:
        """Exact match on description, expression and action."""
        return (
            self.description == other.description
            and self.expression == other.expression
            and self.action == other.action
        )

    def to_payload(self, position: int) -> Dict[str, Any]:
        """Build the body entry used when writing this rule to a zone."""
        payload = self.model_dump(exclude_none=True, exclude={"id", "enabled", "position"})
        payload["enabled"] = True
        payload["position"] = position
        return payload


class WAFTemplate(BaseModel):
    """Durable definition of a rule, owned by this service."""
    id: str
    name: str
    description: str = ""
    expression: str
    action: str
    action_parameters: Optional[Dict[str, Any]] = None
    is_core: bool = False
    is_community: bool = False
    version: int = 1
    display_order: int = 0
    created_by: Optional[str] = None
    target_countries: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_rule(self) -> WAFRule:
        """The template name becomes the rule description on the zone."""
        return WAFRule(
            description=self.name,
            expression=self.expression,
            action=self.action,
            action_parameters=self.action_parameters,
        )


class TemplateVersion(BaseModel):
    """Immutable snapshot of a core template at a past version."""
    id: str
    template_id: str
    version: int
    name: str
    description: str = ""
    expression: str
    action: str
    modified_at: Optional[datetime] = None
    modified_by: Optional[str] = None


class DNSRecord(BaseModel):
    """DNS record fields shown next to a zone."""
    id: str
    type: str
    name: str
    content: str
    proxied: bool = False


class SecuritySettings(BaseModel):
    """SSL/TLS settings of a zone; unset when Cloudflare did not report them."""
    ssl_mode: Optional[str] = None
    min_tls_version: Optional[str] = None


class ZoneResult(BaseModel):
    """Outcome of reconciling a single zone."""
    model_config = ConfigDict(populate_by_name=True)

    zone_id: str = Field(alias="zoneId")
    success: bool
    error: Optional[str] = None
