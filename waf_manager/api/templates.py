"""
API endpoints for WAF template management.
"""
import logging
from typing import Dict, Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from waf_manager.api.dependencies import get_rule_cache, get_template_db
from waf_manager.core.rule_cache import RuleTemplateCache
from waf_manager.exceptions.custom_exceptions import TemplateNotFoundError, TemplateStoreError
from waf_manager.models.requests import TemplateCreate, TemplateUpdate
from waf_manager.models.rules import WAFTemplate, TemplateVersion
from waf_manager.utils.database import TemplateDatabase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/templates")


@router.get("")
async def list_templates(
    scope: str = Query("core"),
    created_by: Optional[str] = Query(None),
    db: TemplateDatabase = Depends(get_template_db),
) -> List[WAFTemplate]:
    """List templates for the core, community or mine tab."""
    try:
        return db.list_templates(scope, created_by)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", status_code=201)
async def create_template(
    payload: TemplateCreate,
    db: TemplateDatabase = Depends(get_template_db),
    cache: RuleTemplateCache = Depends(get_rule_cache),
) -> WAFTemplate:
    """Create a template."""
    try:
        template = db.create_template(payload.model_dump())
    except TemplateStoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if template.is_core:
        cache.invalidate()
    return template


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    payload: TemplateUpdate,
    db: TemplateDatabase = Depends(get_template_db),
    cache: RuleTemplateCache = Depends(get_rule_cache),
) -> WAFTemplate:
    """Edit a template; core templates get a new version."""
    changes: Dict[str, Any] = payload.model_dump(exclude_unset=True, exclude={"modified_by"})
    try:
        template = db.update_template(template_id, changes, modified_by=payload.modified_by)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except TemplateStoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if template.is_core:
        cache.invalidate()
    return template


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    db: TemplateDatabase = Depends(get_template_db),
    cache: RuleTemplateCache = Depends(get_rule_cache),
) -> Dict[str, Any]:
    """Delete a template and its version history."""
    try:
        template = db.delete_template(template_id)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except TemplateStoreError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if template.is_core:
        cache.invalidate()
    return {"success": True, "id": template_id}


@router.post("/{template_id}/share")
async def share_template(
    template_id: str,
    db: TemplateDatabase = Depends(get_template_db),
) -> WAFTemplate:
    """Publish a template to the community."""
    try:
        return db.share_with_community(template_id)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except TemplateStoreError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.get("/{template_id}/versions")
async def list_template_versions(
    template_id: str,
    db: TemplateDatabase = Depends(get_template_db),
) -> List[TemplateVersion]:
    """Version history of a template, newest first."""
    try:
        return db.list_versions(template_id)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
