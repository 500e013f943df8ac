"""Business logic for workspaces with ownership and membership checks."""

import logging

from fastapi import HTTPException

from sitebot.auth.dependencies import CurrentUser, ensure_key_scope
from sitebot.bots import repository as bots
from sitebot.db.models import ALL_MEMBER_ROLES, MANAGER_ROLES, MEMBER_OWNER, PLAN_FREE
from sitebot.ingestion.vector_store import get_vector_store
from sitebot.workspaces import repository

logger = logging.getLogger(__name__)


def member_role(workspace: dict, user_id: str) -> str | None:
    if workspace["owner_id"] == user_id:
        return MEMBER_OWNER
    member = repository.get_member(workspace["id"], user_id)
    return member["role"] if member else None


def ensure_workspace_access(workspace_id: str, user: CurrentUser, roles: set[str] = ALL_MEMBER_ROLES) -> dict:
    """Return the workspace if `user` holds one of `roles` in it. 404 if missing, 403 otherwise."""
    workspace = repository.get_by_id(workspace_id)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    ensure_key_scope(user, workspace_id)
    role = member_role(workspace, user.id)
    if role not in roles:
        raise HTTPException(status_code=403, detail="You do not have access to this workspace")
    return workspace


def create_workspace(user: CurrentUser, data: dict) -> dict:
    if user.via_api_key:
        raise HTTPException(status_code=403, detail="API keys cannot create workspaces")
    return repository.create(user.id, {"plan": PLAN_FREE, **data})


def list_workspaces(user: CurrentUser) -> list[dict]:
    if user.via_api_key:
        workspace = repository.get_by_id(user.workspace_id)
        return [workspace] if workspace else []
    return repository.list_for_user(user.id)


def get_workspace(workspace_id: str, user: CurrentUser) -> dict:
    return ensure_workspace_access(workspace_id, user)


def update_workspace(workspace_id: str, user: CurrentUser, data: dict) -> dict:
    workspace = ensure_workspace_access(workspace_id, user, MANAGER_ROLES)
    update_data = {k: v for k, v in data.items() if v is not None}
    if not update_data:
        return workspace
    return repository.update(workspace_id, update_data)


async def delete_workspace(workspace_id: str, user: CurrentUser) -> None:
    ensure_workspace_access(workspace_id, user, {MEMBER_OWNER})
    vector_store = get_vector_store()
    for bot in bots.list_by_workspace(workspace_id):
        await vector_store.delete_namespace(bot["id"])
        bots.delete_training_data(bot["id"])
    repository.delete(workspace_id)
    logger.info("Deleted workspace %s", workspace_id)


def list_members(workspace_id: str, user: CurrentUser) -> list[dict]:
    workspace = ensure_workspace_access(workspace_id, user)
    owner = {"workspace_id": workspace_id, "user_id": workspace["owner_id"], "role": MEMBER_OWNER}
    return [owner] + repository.list_members(workspace_id)


def add_member(workspace_id: str, user: CurrentUser, member_user_id: str, role: str) -> dict:
    workspace = ensure_workspace_access(workspace_id, user, MANAGER_ROLES)
    if member_user_id == workspace["owner_id"] or repository.get_member(workspace_id, member_user_id):
        raise HTTPException(status_code=409, detail="User is already a member of this workspace")
    return repository.add_member(workspace_id, member_user_id, role)


def remove_member(workspace_id: str, user: CurrentUser, member_user_id: str) -> None:
    workspace = ensure_workspace_access(workspace_id, user, MANAGER_ROLES)
    if member_user_id == workspace["owner_id"]:
        raise HTTPException(status_code=400, detail="The workspace owner cannot be removed")
    if not repository.remove_member(workspace_id, member_user_id):
        raise HTTPException(status_code=404, detail="Member not found")
