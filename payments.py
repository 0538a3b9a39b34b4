"""
Stripe Checkout bridge.

A hosted checkout session is opened for one order; the client comes back
to /session-status with the session id and, once Stripe reports the session
as paid, the linked order is marked paid. There is no webhook: payment
confirmation is driven entirely by that polling call.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

import stripe
from pymongo.database import Database

from config import Settings
from database import ORDERS, to_object_id, update_document
from schemas import CheckoutSessionRequest

log = logging.getLogger("localchefbazar.payments")

CURRENCY = "usd"


def configure_stripe(cfg: Settings) -> None:
    if not cfg.stripe_secret_key:
        log.warning("STRIPE_SECRET_KEY is not set, checkout calls will fail")
    stripe.api_key = cfg.stripe_secret_key


def unit_amount(price: float) -> int:
    """Dollar price to Stripe's integer cents."""
    return int(round(price * 100))


def create_checkout_session(payload: CheckoutSessionRequest, cfg: Settings) -> str:
    session = stripe.checkout.Session.create(
        mode="payment",
        line_items=[
            {
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": {"name": payload.meal_name},
                    "unit_amount": unit_amount(payload.price),
                },
                "quantity": payload.quantity,
            }
        ],
        customer_email=payload.customer_email,
        metadata={
            "orderId": payload.order_id,
            "mealId": payload.meal_id or "",
            "chefId": payload.chef_id or "",
        },
        success_url=f"{cfg.client_domain}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{cfg.client_domain}/dashboard/my-orders",
    )
    log.info("Checkout session %s opened for order %s", session.id, payload.order_id)
    return session.url


def confirm_session(db: Database, session_id: str) -> Dict[str, Any]:
    session = stripe.checkout.Session.retrieve(session_id)
    metadata = getattr(session, "metadata", None) or {}
    order_id = metadata.get("orderId")
    customer = getattr(session, "customer_details", None)
    result = {
        "status": session.status,
        "paymentStatus": session.payment_status,
        "customerEmail": getattr(customer, "email", None) or getattr(session, "customer_email", None),
        "orderId": order_id,
        "updated": False,
    }
    if session.payment_status != "paid" or not order_id:
        return result

    oid = to_object_id(order_id)
    if oid is None:
        log.warning("Session %s carries a malformed order id %r", session_id, order_id)
        return result

    # Keyed on the session id so re-polling the same session is a no-op.
    outcome = update_document(
        db,
        ORDERS,
        {"_id": oid, "sessionId": {"$ne": session_id}},
        {
            "$set": {
                "paymentStatus": "paid",
                "paidAt": datetime.now(timezone.utc),
                "sessionId": session_id,
                "transactionId": getattr(session, "payment_intent", None),
            }
        },
    )
    result["updated"] = outcome["modifiedCount"] > 0
    if result["updated"]:
        log.info("Order %s marked paid by session %s", order_id, session_id)
    return result
