"""Billing endpoints: Stripe checkout, portal, subscription state and the webhook."""

from fastapi import APIRouter, Depends, Header, Query, Request

from sitebot.auth.dependencies import CurrentUser, get_current_user, require_permission
from sitebot.billing import service
from sitebot.billing.schemas import CheckoutRequest, PortalRequest, WorkspaceRef
from sitebot.config.settings import get_settings
from sitebot.db.models import MANAGER_ROLES
from sitebot.workspaces.service import ensure_workspace_access

router = APIRouter(prefix="/api/v1/billing", tags=["Billing"])

manage = require_permission("billing:manage")


@router.post("/checkout", summary="Start a checkout", description="Create a Stripe Checkout session for upgrading a workspace.")
async def checkout(body: CheckoutRequest, user: CurrentUser = Depends(manage)):
    workspace = ensure_workspace_access(body.workspace_id, user, MANAGER_ROLES)
    app_url = get_settings().APP_URL
    session = service.create_checkout_session(
        workspace,
        body.plan,
        user.email,
        success_url=body.success_url or f"{app_url}/dashboard/billing/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=body.cancel_url or f"{app_url}/dashboard/billing",
    )
    return {"status": "success", "data": session}


@router.post("/portal", summary="Open the customer portal")
async def portal(body: PortalRequest, user: CurrentUser = Depends(manage)):
    workspace = ensure_workspace_access(body.workspace_id, user, MANAGER_ROLES)
    return_url = body.return_url or f"{get_settings().APP_URL}/dashboard/billing"
    return {"status": "success", "data": service.create_portal_session(workspace, return_url)}


@router.post("/webhook", include_in_schema=False)
async def webhook(request: Request, stripe_signature: str | None = Header(None)):
    payload = await request.body()
    event_type = service.handle_webhook(payload, stripe_signature)
    return {"received": True, "type": event_type}


@router.get("/subscription", summary="Subscription status")
async def subscription(workspace_id: str = Query(...), user: CurrentUser = Depends(get_current_user)):
    workspace = ensure_workspace_access(workspace_id, user)
    return {"status": "success", "data": service.get_subscription_status(workspace)}


@router.post("/subscription/cancel", summary="Cancel at period end")
async def cancel(body: WorkspaceRef, user: CurrentUser = Depends(manage)):
    workspace = ensure_workspace_access(body.workspace_id, user, MANAGER_ROLES)
    return {"status": "success", "data": service.cancel_subscription(workspace)}


@router.get("/invoices", summary="List invoices")
async def invoices(workspace_id: str = Query(...), limit: int = Query(10, ge=1, le=100), user: CurrentUser = Depends(manage)):
    workspace = ensure_workspace_access(workspace_id, user, MANAGER_ROLES)
    return {"status": "success", "data": service.list_invoices(workspace, limit)}


@router.get("/products", summary="List plans")
async def products(user: CurrentUser = Depends(get_current_user)):
    return {"status": "success", "data": service.list_products()}
