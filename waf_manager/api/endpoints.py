"""
API endpoint for the Cloudflare proxy.
"""
import logging
from typing import Dict, Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from waf_manager.api.dependencies import get_proxy_service
from waf_manager.exceptions.custom_exceptions import WAFManagerError
from waf_manager.models.requests import parse_proxy_request
from waf_manager.services.proxy_service import ProxyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _error_message(error: Exception) -> str:
    if isinstance(error, WAFManagerError):
        return error.message
    return str(error) or "An error occurred"


@router.options("/cloudflare-proxy")
async def cloudflare_proxy_preflight() -> Response:
    """Answer CORS preflight with an empty body."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/cloudflare-proxy")
async def cloudflare_proxy(request: Request, service: ProxyService = Depends(get_proxy_service)) -> JSONResponse:
    """
    Proxy a dashboard action to Cloudflare.

    The body carries the caller's Cloudflare credentials and an optional
    action: update_dns_proxy, apply_rules, resync_rules, disable_waf.
    Without an action the zones of the account are listed with their WAF
    status, DNS records and security settings.

    Returns:
        200 with the action result, or 400 with {success: false, error}
    """
    try:
        body: Dict[str, Any] = await request.json()
        proxy_request = parse_proxy_request(body)
        result = await service.handle(proxy_request)
        return JSONResponse(content=result, headers=CORS_HEADERS)
    except Exception as e:
        logger.exception(f"Error processing proxy request: {str(e)}")
        return JSONResponse(
            content={"success": False, "error": _error_message(e)},
            status_code=400,
            headers=CORS_HEADERS,
        )
