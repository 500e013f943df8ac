"""Workspace CRUD and membership endpoints."""

from fastapi import APIRouter, Depends

from sitebot.auth.dependencies import CurrentUser, get_current_user, require_permission
from sitebot.workspaces import service
from sitebot.workspaces.schemas import AddMemberRequest, CreateWorkspaceRequest, UpdateWorkspaceRequest

router = APIRouter(prefix="/api/v1/workspaces", tags=["Workspaces"])


@router.get("", summary="List workspaces", description="Workspaces the caller owns or belongs to.")
async def list_all(user: CurrentUser = Depends(get_current_user)):
    return {"status": "success", "data": service.list_workspaces(user)}


@router.post("", status_code=201, summary="Create a workspace")
async def create(body: CreateWorkspaceRequest, user: CurrentUser = Depends(get_current_user)):
    return {"status": "success", "data": service.create_workspace(user, body.model_dump(exclude_none=True))}


@router.get("/{workspace_id}", summary="Get a workspace")
async def get(workspace_id: str, user: CurrentUser = Depends(get_current_user)):
    return {"status": "success", "data": service.get_workspace(workspace_id, user)}


@router.patch("/{workspace_id}", summary="Update a workspace")
async def patch(
    workspace_id: str,
    body: UpdateWorkspaceRequest,
    user: CurrentUser = Depends(require_permission("workspace:manage")),
):
    return {"status": "success", "data": service.update_workspace(workspace_id, user, body.model_dump())}


@router.delete("/{workspace_id}", status_code=204, summary="Delete a workspace", description="Owner only. Cascades to bots and their data.")
async def delete(workspace_id: str, user: CurrentUser = Depends(require_permission("workspace:manage"))):
    await service.delete_workspace(workspace_id, user)


@router.get("/{workspace_id}/members", summary="List members")
async def members(workspace_id: str, user: CurrentUser = Depends(get_current_user)):
    return {"status": "success", "data": service.list_members(workspace_id, user)}


@router.post("/{workspace_id}/members", status_code=201, summary="Add a member")
async def add_member(
    workspace_id: str,
    body: AddMemberRequest,
    user: CurrentUser = Depends(require_permission("user:manage")),
):
    return {"status": "success", "data": service.add_member(workspace_id, user, body.user_id, body.role)}


@router.delete("/{workspace_id}/members/{member_user_id}", status_code=204, summary="Remove a member")
async def remove_member(
    workspace_id: str,
    member_user_id: str,
    user: CurrentUser = Depends(require_permission("user:manage")),
):
    service.remove_member(workspace_id, user, member_user_id)
