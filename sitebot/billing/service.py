"""Stripe billing: checkout, customer portal, subscription state and webhooks.

The workspace row carries ``plan`` and ``stripe_customer_id``; the
``subscriptions`` table mirrors the Stripe subscription for each workspace.
Webhooks are the only path that changes a workspace's plan.
"""

import json
import logging
from datetime import datetime, timezone

import stripe
from fastapi import HTTPException

from sitebot.config.settings import get_settings
from sitebot.db.client import get_supabase
from sitebot.db.models import PLAN_ENTERPRISE, PLAN_FREE, PLAN_PRO, SUBSCRIPTIONS
from sitebot.utils.errors import UpstreamServiceError
from sitebot.workspaces import repository as workspaces

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = {"active", "trialing"}
PAID_PLANS = (PLAN_PRO, PLAN_ENTERPRISE)


class BillingError(UpstreamServiceError):
    service = "stripe"


def _configure() -> None:
    settings = get_settings()
    if not settings.STRIPE_SECRET_KEY:
        raise HTTPException(status_code=503, detail="Billing is not configured")
    stripe.api_key = settings.STRIPE_SECRET_KEY


def _call(action: str, fn, *args, **kwargs):
    _configure()
    try:
        return fn(*args, **kwargs)
    except stripe.StripeError as e:
        raise BillingError(f"Stripe {action} failed: {e.user_message or e}") from e


def _timestamp(value: int | None) -> str | None:
    return datetime.fromtimestamp(value, timezone.utc).isoformat() if value else None


def plan_for_price(price_id: str | None) -> str:
    settings = get_settings()
    for plan in PAID_PLANS:
        if price_id and settings.price_for_plan(plan) == price_id:
            return plan
    return PLAN_FREE


def create_customer(email: str, workspace_id: str) -> str:
    customer = _call("customer creation", stripe.Customer.create, email=email or None, metadata={"workspace_id": workspace_id})
    workspaces.update(workspace_id, {"stripe_customer_id": customer.id})
    return customer.id


def create_checkout_session(workspace: dict, plan: str, email: str, success_url: str, cancel_url: str) -> dict:
    price_id = get_settings().price_for_plan(plan)
    if not price_id:
        raise HTTPException(status_code=400, detail=f"No price configured for plan '{plan}'")
    customer_id = workspace.get("stripe_customer_id") or create_customer(email, workspace["id"])
    metadata = {"workspace_id": workspace["id"], "plan": plan}
    session = _call(
        "checkout",
        stripe.checkout.Session.create,
        customer=customer_id,
        mode="subscription",
        line_items=[{"price": price_id, "quantity": 1}],
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
        subscription_data={"metadata": metadata},
    )
    return {"session_id": session.id, "url": session.url}


def create_portal_session(workspace: dict, return_url: str) -> dict:
    if not workspace.get("stripe_customer_id"):
        raise HTTPException(status_code=400, detail="Workspace has no billing account yet")
    session = _call("portal", stripe.billing_portal.Session.create, customer=workspace["stripe_customer_id"], return_url=return_url)
    return {"url": session.url}


def get_subscription_row(workspace_id: str) -> dict | None:
    db = get_supabase()
    result = db.table(SUBSCRIPTIONS).select("*").eq("workspace_id", workspace_id).execute()
    return result.data[0] if result.data else None


def _save_subscription(workspace_id: str, data: dict) -> None:
    db = get_supabase()
    data = {**data, "updated_at": datetime.now(timezone.utc).isoformat()}
    if get_subscription_row(workspace_id):
        db.table(SUBSCRIPTIONS).update(data).eq("workspace_id", workspace_id).execute()
    else:
        db.table(SUBSCRIPTIONS).insert({"workspace_id": workspace_id, **data}).execute()


def get_subscription_status(workspace: dict) -> dict:
    row = get_subscription_row(workspace["id"])
    if not row or not row.get("stripe_subscription_id"):
        return {"plan": workspace.get("plan") or PLAN_FREE, "status": None, "current_period_end": None, "cancel_at_period_end": False}
    subscription = _call("subscription lookup", stripe.Subscription.retrieve, row["stripe_subscription_id"])
    return {
        "plan": workspace.get("plan") or PLAN_FREE,
        "status": subscription.status,
        "current_period_end": _timestamp(getattr(subscription, "current_period_end", None)),
        "cancel_at_period_end": bool(subscription.cancel_at_period_end),
    }


def cancel_subscription(workspace: dict) -> dict:
    """Cancel at period end. The plan changes when Stripe sends ``customer.subscription.deleted``."""
    row = get_subscription_row(workspace["id"])
    if not row or not row.get("stripe_subscription_id"):
        raise HTTPException(status_code=404, detail="No active subscription")
    subscription = _call("cancellation", stripe.Subscription.modify, row["stripe_subscription_id"], cancel_at_period_end=True)
    _save_subscription(workspace["id"], {"cancel_at_period_end": True})
    return {"status": subscription.status, "cancel_at_period_end": True}


def list_products() -> list[dict]:
    products = _call("product listing", stripe.Product.list, active=True, expand=["data.default_price"])
    result = []
    for product in products.data:
        price = product.default_price
        if price is None or isinstance(price, str):
            continue
        recurring = getattr(price, "recurring", None)
        result.append({
            "id": product.id,
            "name": product.name,
            "description": product.description,
            "price_id": price.id,
            "amount": price.unit_amount,
            "currency": price.currency,
            "interval": recurring.interval if recurring else None,
            "plan": plan_for_price(price.id),
        })
    return result


def list_invoices(workspace: dict, limit: int = 10) -> list[dict]:
    if not workspace.get("stripe_customer_id"):
        return []
    invoices = _call("invoice listing", stripe.Invoice.list, customer=workspace["stripe_customer_id"], limit=limit)
    return [
        {
            "id": invoice.id,
            "amount_paid": invoice.amount_paid,
            "currency": invoice.currency,
            "status": invoice.status,
            "created": _timestamp(invoice.created),
            "hosted_invoice_url": invoice.hosted_invoice_url,
        }
        for invoice in invoices.data
    ]


# --- Webhooks ---

def _workspace_for_subscription(subscription: dict) -> str | None:
    workspace_id = (subscription.get("metadata") or {}).get("workspace_id")
    if workspace_id:
        return workspace_id
    db = get_supabase()
    result = db.table(SUBSCRIPTIONS).select("workspace_id").eq("stripe_subscription_id", subscription["id"]).execute()
    return result.data[0]["workspace_id"] if result.data else None


def _subscription_price(subscription: dict) -> str | None:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0]["price"]["id"] if items else None


def _on_checkout_completed(session: dict) -> None:
    metadata = session.get("metadata") or {}
    workspace_id = metadata.get("workspace_id")
    if not workspace_id:
        logger.warning("Checkout session %s has no workspace_id metadata", session.get("id"))
        return
    plan = metadata.get("plan", PLAN_PRO)
    workspaces.update(workspace_id, {"plan": plan, "stripe_customer_id": session.get("customer")})
    _save_subscription(workspace_id, {
        "stripe_customer_id": session.get("customer"),
        "stripe_subscription_id": session.get("subscription"),
        "plan": plan,
        "status": "active",
    })
    logger.info("Workspace %s upgraded to %s", workspace_id, plan)


def _on_subscription_updated(subscription: dict) -> None:
    workspace_id = _workspace_for_subscription(subscription)
    if not workspace_id:
        logger.warning("No workspace for subscription %s", subscription.get("id"))
        return
    status = subscription.get("status")
    plan = (subscription.get("metadata") or {}).get("plan") or plan_for_price(_subscription_price(subscription))
    if status not in ACTIVE_STATUSES:
        plan = PLAN_FREE
    workspaces.update(workspace_id, {"plan": plan})
    _save_subscription(workspace_id, {
        "stripe_subscription_id": subscription.get("id"),
        "status": status,
        "plan": plan,
        "current_period_end": _timestamp(subscription.get("current_period_end")),
        "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
    })


def _on_subscription_deleted(subscription: dict) -> None:
    workspace_id = _workspace_for_subscription(subscription)
    if not workspace_id:
        return
    workspaces.update(workspace_id, {"plan": PLAN_FREE})
    _save_subscription(workspace_id, {"status": "canceled", "plan": PLAN_FREE, "cancel_at_period_end": False})
    logger.info("Workspace %s downgraded to free", workspace_id)


def _on_invoice(invoice: dict, status: str) -> None:
    subscription_id = invoice.get("subscription")
    if not subscription_id:
        return
    db = get_supabase()
    db.table(SUBSCRIPTIONS).update({"status": status}).eq("stripe_subscription_id", subscription_id).execute()
    if status == "past_due":
        logger.warning("Payment failed for subscription %s", subscription_id)


HANDLERS = {
    "checkout.session.completed": _on_checkout_completed,
    "customer.subscription.updated": _on_subscription_updated,
    "customer.subscription.deleted": _on_subscription_deleted,
    "invoice.payment_succeeded": lambda invoice: _on_invoice(invoice, "active"),
    "invoice.payment_failed": lambda invoice: _on_invoice(invoice, "past_due"),
}


def handle_webhook(payload: bytes, signature: str | None) -> str:
    """Verify and apply a Stripe event. Returns the event type.

    Bad signatures are a 400. Processing failures are logged and acknowledged
    so Stripe does not retry an event that will fail the same way.
    """
    secret = get_settings().STRIPE_WEBHOOK_SECRET
    if not secret:
        raise HTTPException(status_code=503, detail="Webhook secret not configured")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing Stripe signature")
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        raise HTTPException(status_code=400, detail="Invalid signature")

    event = json.loads(payload)
    event_type = event.get("type", "")
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.debug("Ignoring Stripe event %s", event_type)
        return event_type
    try:
        handler(event["data"]["object"])
    except Exception:
        logger.exception("Failed to process Stripe event %s (%s)", event.get("id"), event_type)
    return event_type
