"""API key management endpoints. Keys are stored hashed and shown once."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from sitebot.api_keys.keys import extract_key_prefix, generate_api_key, mask_api_key
from sitebot.api_keys.schemas import CreateApiKeyRequest
from sitebot.auth.dependencies import CurrentUser, require_permission
from sitebot.db.client import get_supabase
from sitebot.db.models import API_KEYS, MANAGER_ROLES, MEMBER_OWNER
from sitebot.workspaces.service import ensure_workspace_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/api-keys", tags=["API Keys"])


def _public_view(row: dict) -> dict:
    view = {k: v for k, v in row.items() if k != "key_hash"}
    view.setdefault("key_display", f"{row['key_prefix']}_...")
    return view


@router.get("", summary="List API keys", description="Keys of a workspace, masked.")
async def list_keys(
    workspace_id: str = Query(...),
    user: CurrentUser = Depends(require_permission("apikey:manage")),
):
    ensure_workspace_access(workspace_id, user, MANAGER_ROLES)
    db = get_supabase()
    result = (
        db.table(API_KEYS)
        .select("*")
        .eq("workspace_id", workspace_id)
        .order("created_at", desc=True)
        .execute()
    )
    return {"status": "success", "data": [_public_view(row) for row in result.data]}


@router.post("", status_code=201, summary="Create an API key", description="The full key is returned only in this response.")
async def create_key(body: CreateApiKeyRequest, user: CurrentUser = Depends(require_permission("apikey:manage"))):
    ensure_workspace_access(body.workspace_id, user, {MEMBER_OWNER})

    key, key_hash = generate_api_key()
    db = get_supabase()
    result = db.table(API_KEYS).insert({
        "workspace_id": body.workspace_id,
        "user_id": user.id,
        "name": body.name,
        "key_prefix": extract_key_prefix(key),
        "key_hash": key_hash,
        "key_display": mask_api_key(key),
        "permissions": body.permissions,
        "is_active": True,
        "expires_at": body.expires_at.isoformat() if body.expires_at else None,
    }).execute()
    if not result.data:
        raise HTTPException(status_code=500, detail="Failed to create API key")

    logger.info("API key %s created for workspace %s", result.data[0]["id"], body.workspace_id)
    return {
        "status": "success",
        "data": {**_public_view(result.data[0]), "key": key},
        "message": "Save this API key securely. It will not be shown again.",
    }


@router.delete("/{key_id}", status_code=204, summary="Delete an API key")
async def delete_key(key_id: str, user: CurrentUser = Depends(require_permission("apikey:manage"))):
    db = get_supabase()
    result = db.table(API_KEYS).select("id, workspace_id").eq("id", key_id).execute()
    if not result.data:
        raise HTTPException(status_code=404, detail="API key not found")
    ensure_workspace_access(result.data[0]["workspace_id"], user, MANAGER_ROLES)
    db.table(API_KEYS).delete().eq("id", key_id).execute()
