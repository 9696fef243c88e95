"""
Side-effect tasks, keyed by event kind.

Every task receives the entity id and the event context, re-loads what it
needs in its own session and talks to exactly one collaborator. Failures are
handled by the dispatcher.
"""
from __future__ import annotations

import mimetypes

from flask import current_app

from quoteflow import db
from quoteflow.business.notifications import messages
from quoteflow.business.notifications.notification_store import NotificationStore
from quoteflow.data.core.user import User
from quoteflow.data.inquiries import Inquiry
from quoteflow.data.orders import Order
from quoteflow.data.quotations import Quotation
from quoteflow.errors import DependencyFailure, NotFound
from quoteflow.integrations import get_integrations
from quoteflow.integrations.mailer import EmailAttachment
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.notifications.tasks")

ADMIN_ROLES = ("admin", "backoffice")


def _load(model, entity_id):
    entity = db.session.get(model, entity_id)
    if entity is None:
        raise NotFound(f"{model.__name__} {entity_id} no longer exists")
    return entity


def _back_office_ids(*roles) -> list[int]:
    return [user.id for user in User.with_roles(*(roles or ADMIN_ROLES))]


def _back_office_emails() -> list[str]:
    configured = current_app.config.get('BACKOFFICE_EMAILS') or []
    return configured or [user.email for user in User.with_roles(*ADMIN_ROLES) if user.email]


def _push(user_id: int | None, category: str, title: str, message: str, data: dict) -> None:
    event = {"type": "notification", "category": category, "title": title, "message": message, "data": data}
    realtime = get_integrations().realtime
    if user_id is not None:
        realtime.send_to_user(user_id, event)


def _push_roles(roles, category: str, title: str, message: str, data: dict) -> None:
    event = {"type": "notification", "category": category, "title": title, "message": message, "data": data}
    realtime = get_integrations().realtime
    for role in roles:
        realtime.send_to_role(role, event)


def _sms(phone: str | None, text: str) -> None:
    if not phone:
        logger.debug("Customer has no phone number, SMS skipped")
        return
    get_integrations().sms.send(phone, text)


# ---------------------------------------------------------------------------
# inquiry_created
# ---------------------------------------------------------------------------

def inquiry_backoffice_email(inquiry_id, context):
    inquiry = _load(Inquiry, inquiry_id)
    integrations = get_integrations()
    attachments = [EmailAttachment(f"{inquiry.inquiry_number}_parts.csv", messages.inquiry_parts_csv(inquiry), "text/csv")]
    for stored in inquiry.files:
        locator = stored.external_url or stored.locator
        if not locator:
            continue
        try:
            content = integrations.files.retrieve(locator)
        except (DependencyFailure, NotFound) as e:
            logger.warning(f"Attachment {stored.original_name} skipped for {inquiry.inquiry_number}: {e.message}")
            continue
        mimetype = mimetypes.guess_type(stored.original_name)[0] or "application/octet-stream"
        attachments.append(EmailAttachment(stored.original_name, content, mimetype))

    subject, body = messages.inquiry_backoffice_email(inquiry)
    integrations.email.send(_back_office_emails(), subject, body, attachments)


def inquiry_customer_email(inquiry_id, context):
    inquiry = _load(Inquiry, inquiry_id)
    subject, body = messages.inquiry_customer_email(inquiry)
    get_integrations().email.send(inquiry.customer.email, subject, body)


def inquiry_backoffice_notifications(inquiry_id, context):
    inquiry = _load(Inquiry, inquiry_id)
    NotificationStore.create_for_users(
        _back_office_ids(),
        "New Inquiry Received",
        f"New inquiry {inquiry.inquiry_number} from {inquiry.customer.full_name} "
        f"with {len(inquiry.parts)} part(s)",
        "info",
        ("inquiry", inquiry.id),
        {"inquiryNumber": inquiry.inquiry_number, "customerId": inquiry.customer_id},
    )


def inquiry_realtime(inquiry_id, context):
    inquiry = _load(Inquiry, inquiry_id)
    _push_roles(ADMIN_ROLES, "inquiry", "New Inquiry", f"New inquiry {inquiry.inquiry_number} received", {
        "inquiryId": inquiry.id,
        "inquiryNumber": inquiry.inquiry_number,
        "customerName": inquiry.customer.full_name,
        "partsCount": len(inquiry.parts),
    })


# ---------------------------------------------------------------------------
# quotations
# ---------------------------------------------------------------------------

def quotation_created_notification(quotation_id, context):
    quotation = _load(Quotation, quotation_id)
    NotificationStore.create(
        quotation.customer_id,
        "Quotation Created",
        f"Quotation {quotation.quotation_number} has been prepared for your inquiry",
        "info",
        ("quotation", quotation.id),
        {"quotationNumber": quotation.quotation_number, "totalAmount": quotation.total_amount},
    )


def quotation_created_realtime(quotation_id, context):
    quotation = _load(Quotation, quotation_id)
    _push(quotation.customer_id, "quotation", "Quotation Created",
          f"Quotation {quotation.quotation_number} is ready", {
              "quotationId": quotation.id,
              "quotationNumber": quotation.quotation_number,
              "inquiryId": quotation.inquiry_id,
              "totalAmount": quotation.total_amount,
          })


def _inquiry_number(quotation: Quotation) -> str | None:
    inquiry = db.session.get(Inquiry, quotation.inquiry_id)
    return inquiry.inquiry_number if inquiry else None


def quotation_sent_email(quotation_id, context):
    quotation = _load(Quotation, quotation_id)
    integrations = get_integrations()
    attachments = []
    if quotation.pdf_locator:
        pdf = integrations.files.retrieve(quotation.pdf_locator)
        attachments.append(EmailAttachment(f"{quotation.quotation_number}.pdf", pdf, "application/pdf"))
    subject, body = messages.quotation_email(quotation, _inquiry_number(quotation))
    integrations.email.send(quotation.customer_email, subject, body, attachments)


def quotation_sent_sms(quotation_id, context):
    quotation = _load(Quotation, quotation_id)
    _sms(quotation.customer_phone, messages.quotation_sms(quotation, _inquiry_number(quotation)))


def quotation_responded_notifications(quotation_id, context):
    quotation = _load(Quotation, quotation_id)
    accepted = quotation.status == "accepted"
    message = f"{quotation.customer_name} {'accepted' if accepted else 'rejected'} quotation {quotation.quotation_number}"
    if not accepted and quotation.rejection_reason:
        message += f": {quotation.rejection_reason}"
    NotificationStore.create_for_users(
        _back_office_ids(),
        "Quotation Accepted" if accepted else "Quotation Rejected",
        message,
        "success" if accepted else "warning",
        ("quotation", quotation.id),
        {"quotationNumber": quotation.quotation_number, "status": quotation.status},
    )


def quotation_responded_realtime(quotation_id, context):
    quotation = _load(Quotation, quotation_id)
    _push_roles(ADMIN_ROLES, "quotation", "Quotation Response",
                f"Quotation {quotation.quotation_number} {quotation.status}", {
                    "quotationId": quotation.id,
                    "quotationNumber": quotation.quotation_number,
                    "status": quotation.status,
                })


# ---------------------------------------------------------------------------
# order_created / payment_verified
# ---------------------------------------------------------------------------

def order_admin_email(order_id, context):
    order = _load(Order, order_id)
    subject, body = messages.admin_payment_email(order)
    get_integrations().email.send(_back_office_emails(), subject, body)


def order_customer_email(order_id, context):
    order = _load(Order, order_id)
    payment = order.payment
    if payment is None or payment.status != "completed" or payment.method == "cod":
        return
    subject, body = messages.customer_payment_email(order)
    get_integrations().email.send(order.customer.email, subject, body)


def order_customer_notification(order_id, context):
    order = _load(Order, order_id)
    cod = order.payment is not None and order.payment.method == "cod"
    if cod:
        title, message = "Order Created", f"Order {order.order_number} has been placed with cash on delivery"
    else:
        title, message = "Payment Successful", f"Payment received for order {order.order_number}"
    NotificationStore.create(
        order.customer_id, title, message, "success", ("order", order.id),
        {"orderNumber": order.order_number, "amount": order.total_amount},
    )


def order_admin_notifications(order_id, context):
    order = _load(Order, order_id)
    method = order.payment.method if order.payment else "pending"
    NotificationStore.create_for_users(
        _back_office_ids(*User.BACK_OFFICE_ROLES),
        "Payment Received",
        f"Order {order.order_number} from {order.customer.full_name} "
        f"({order.currency} {order.total_amount:.2f}, {method})",
        "info",
        ("order", order.id),
        {"orderNumber": order.order_number, "paymentMethod": method},
    )


def order_realtime(order_id, context):
    order = _load(Order, order_id)
    data = {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "status": order.status,
        "totalAmount": order.total_amount,
    }
    _push(order.customer_id, "order", "Order Created", f"Order {order.order_number} created", data)
    _push_roles(User.BACK_OFFICE_ROLES, "payment", "Payment Received", f"Order {order.order_number} placed", data)


def payment_verified_notification(order_id, context):
    order = _load(Order, order_id)
    NotificationStore.create(
        order.customer_id,
        "Order Confirmed",
        f"Payment received. Order {order.order_number} is confirmed",
        "success",
        ("order", order.id),
        {"orderNumber": order.order_number, "transactionId": order.payment.transaction_id},
    )


# ---------------------------------------------------------------------------
# order status
# ---------------------------------------------------------------------------

def order_status_email(order_id, context):
    order = _load(Order, order_id)
    subject, body = messages.order_status_email(order, context.get("oldStatus"), context.get("newStatus", order.status))
    get_integrations().email.send(order.customer.email, subject, body)


def order_status_notification(order_id, context):
    order = _load(Order, order_id)
    if context.get("newStatus") != "dispatched":
        return
    if order.dispatch is not None and order.dispatch.has_tracking:
        return
    NotificationStore.create(
        order.customer_id,
        "Order Dispatched",
        f"Order {order.order_number} has been dispatched. Tracking details will follow",
        "info",
        ("order", order.id),
        {"orderNumber": order.order_number},
    )


def order_status_realtime(order_id, context):
    order = _load(Order, order_id)
    data = {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "oldStatus": context.get("oldStatus"),
        "newStatus": context.get("newStatus", order.status),
    }
    message = f"Order {order.order_number} is now {messages.ORDER_STATUS_LABELS.get(data['newStatus'], data['newStatus'])}"
    _push(order.customer_id, "order", "Order Status Updated", message, data)
    _push_roles(ADMIN_ROLES, "order", "Order Status Updated", message, data)


def delivery_time_notification(order_id, context):
    order = _load(Order, order_id)
    production = order.production
    completion = production.estimated_completion if production else None
    when = completion.strftime("%d %b %Y") if completion else "TBD"
    NotificationStore.create(
        order.customer_id,
        "Delivery Time Updated",
        f"Estimated completion for order {order.order_number}: {when}",
        "info",
        ("order", order.id),
        {"orderNumber": order.order_number, "estimatedCompletion": completion.isoformat() if completion else None},
    )


# ---------------------------------------------------------------------------
# dispatch / delivery
# ---------------------------------------------------------------------------

def dispatch_email(order_id, context):
    order = _load(Order, order_id)
    subject, body = messages.dispatch_email(order)
    get_integrations().email.send(order.customer.email, subject, body)


def dispatch_sms(order_id, context):
    order = _load(Order, order_id)
    _sms(order.customer.phone_number, messages.dispatch_sms(order))


def dispatch_notification(order_id, context):
    order = _load(Order, order_id)
    dispatch = order.dispatch
    NotificationStore.create(
        order.customer_id,
        "Order Dispatched",
        f"Order {order.order_number} shipped via {dispatch.courier}, tracking {dispatch.tracking_number}",
        "info",
        ("order", order.id),
        {"courier": dispatch.courier, "trackingNumber": dispatch.tracking_number},
    )


def dispatch_realtime(order_id, context):
    order = _load(Order, order_id)
    dispatch = order.dispatch
    _push(order.customer_id, "dispatch", "Order Dispatched", f"Order {order.order_number} is on its way", {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "courier": dispatch.courier,
        "trackingNumber": dispatch.tracking_number,
    })


def delivery_email(order_id, context):
    order = _load(Order, order_id)
    subject, body = messages.delivery_email(order)
    get_integrations().email.send(order.customer.email, subject, body)


def delivery_sms(order_id, context):
    order = _load(Order, order_id)
    _sms(order.customer.phone_number, messages.delivery_sms(order))


def delivery_notification(order_id, context):
    order = _load(Order, order_id)
    NotificationStore.create(
        order.customer_id,
        "Order Delivered",
        f"Order {order.order_number} has been delivered",
        "success",
        ("order", order.id),
        {"orderNumber": order.order_number},
    )


def delivery_realtime(order_id, context):
    order = _load(Order, order_id)
    _push(order.customer_id, "dispatch", "Order Delivered", f"Order {order.order_number} delivered",
          {"orderId": order.id, "orderNumber": order.order_number})


# ---------------------------------------------------------------------------
# manual
# ---------------------------------------------------------------------------

def manual_notification(user_id, context):
    related = context.get("relatedEntity")
    NotificationStore.create(
        user_id,
        context["title"],
        context["message"],
        context.get("type", "info"),
        (related["type"], related["entityId"]) if related else None,
        context.get("metadata"),
    )


EVENT_TASKS = {
    "inquiry_created": [
        ("backoffice_email", inquiry_backoffice_email),
        ("customer_email", inquiry_customer_email),
        ("notifications", inquiry_backoffice_notifications),
        ("realtime", inquiry_realtime),
    ],
    "quotation_created": [
        ("notification", quotation_created_notification),
        ("realtime", quotation_created_realtime),
    ],
    "quotation_sent": [
        ("email", quotation_sent_email),
        ("sms", quotation_sent_sms),
    ],
    "quotation_responded": [
        ("notifications", quotation_responded_notifications),
        ("realtime", quotation_responded_realtime),
    ],
    "order_created": [
        ("admin_email", order_admin_email),
        ("customer_email", order_customer_email),
        ("customer_notification", order_customer_notification),
        ("admin_notifications", order_admin_notifications),
        ("realtime", order_realtime),
    ],
    "payment_verified": [
        ("customer_email", order_customer_email),
        ("customer_notification", payment_verified_notification),
        ("admin_notifications", order_admin_notifications),
        ("realtime", order_realtime),
    ],
    "order_status_changed": [
        ("email", order_status_email),
        ("notification", order_status_notification),
        ("realtime", order_status_realtime),
    ],
    "delivery_time_updated": [
        ("notification", delivery_time_notification),
    ],
    "dispatch_recorded": [
        ("email", dispatch_email),
        ("sms", dispatch_sms),
        ("notification", dispatch_notification),
        ("realtime", dispatch_realtime),
    ],
    "dispatch_updated": [
        ("email", dispatch_email),
        ("sms", dispatch_sms),
        ("notification", dispatch_notification),
        ("realtime", dispatch_realtime),
    ],
    "delivery_confirmed": [
        ("email", delivery_email),
        ("sms", delivery_sms),
        ("notification", delivery_notification),
        ("realtime", delivery_realtime),
    ],
    "manual_notification": [
        ("record", manual_notification),
    ],
}
