"""
Inbound request models for the Cloudflare proxy and template routes.
"""
from enum import Enum
from typing import List, Dict, Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from waf_manager.exceptions.custom_exceptions import InvalidRequestError


class ProxyAction(str, Enum):
    """Actions understood by the proxy endpoint."""
    LIST = "list"
    UPDATE_DNS_PROXY = "update_dns_proxy"
    APPLY_RULES = "apply_rules"
    RESYNC_RULES = "resync_rules"
    DISABLE_WAF = "disable_waf"


class CloudflareCredentials(BaseModel):
    """Caller-supplied key material, passed straight through to Cloudflare."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str = Field(alias="apiKey")
    email: str
    account_id: str = Field(alias="accountId")


class ListZonesRequest(CloudflareCredentials):
    page: int = 1
    per_page: int = Field(default=50, alias="perPage")
    search: str = ""


class UpdateDnsProxyRequest(CloudflareCredentials):
    zone_id: str = Field(alias="zoneId")
    record_id: str = Field(alias="recordId")
    record: Dict[str, Any]
    proxied: bool = False


class ApplyRulesRequest(CloudflareCredentials):
    zone_id: Optional[str] = Field(default=None, alias="zoneId")
    zone_ids: List[str] = Field(default_factory=list, alias="zoneIds")

    @property
    def target_zones(self) -> List[str]:
        """A single ``zoneId`` wins over ``zoneIds``."""
        return [self.zone_id] if self.zone_id else list(self.zone_ids)


class ResyncRulesRequest(ApplyRulesRequest):
    pass


class DisableWafRequest(CloudflareCredentials):
    zone_id: str = Field(alias="zoneId")


ProxyRequest = Union[
    ListZonesRequest,
    UpdateDnsProxyRequest,
    ApplyRulesRequest,
    ResyncRulesRequest,
    DisableWafRequest,
]

REQUEST_TYPES = {
    ProxyAction.LIST: ListZonesRequest,
    ProxyAction.UPDATE_DNS_PROXY: UpdateDnsProxyRequest,
    ProxyAction.APPLY_RULES: ApplyRulesRequest,
    ProxyAction.RESYNC_RULES: ResyncRulesRequest,
    ProxyAction.DISABLE_WAF: DisableWafRequest,
}


def parse_proxy_request(body: Any) -> ProxyRequest:
    """
    Turn a raw JSON body into the request variant for its action.

    Args:
        body: Decoded JSON body

    Returns:
        One of the ProxyRequest variants

    Raises:
        InvalidRequestError: If credentials, the action or its fields are invalid
    """
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    if not body.get("apiKey") or not body.get("email") or not body.get("accountId"):
        raise InvalidRequestError("Missing required Cloudflare credentials")

    raw_action = body.get("action") or ProxyAction.LIST.value
    try:
        action = ProxyAction(raw_action)
    except ValueError:
        raise InvalidRequestError(f"Unsupported action: {raw_action}")

    request_type = REQUEST_TYPES[action]
    try:
        request = request_type.model_validate(body)
    except ValidationError as e:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in e.errors())
        raise InvalidRequestError(f"Invalid request for action '{action.value}': {fields}")

    if isinstance(request, ApplyRulesRequest) and not request.target_zones:
        raise InvalidRequestError(f"Action '{action.value}' requires zoneId or zoneIds")

    return request


class TemplateCreate(BaseModel):
    """Payload for creating a template."""
    name: str
    description: str = ""
    expression: str
    action: str = "managed_challenge"
    action_parameters: Optional[Dict[str, Any]] = None
    is_core: bool = False
    is_community: bool = True
    display_order: Optional[int] = None
    created_by: Optional[str] = None
    target_countries: List[str] = ["AU"]


class TemplateUpdate(BaseModel):
    """Payload for editing a template; unset fields are left alone."""
    name: Optional[str] = None
    description: Optional[str] = None
    expression: Optional[str] = None
    action: Optional[str] = None
    action_parameters: Optional[Dict[str, Any]] = None
    display_order: Optional[int] = None
    target_countries: Optional[List[str]] = None
    modified_by: Optional[str] = None

    @field_validator("name", "description", "expression", "action")
    @classmethod
    def not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("may be omitted but not null")
        return value
