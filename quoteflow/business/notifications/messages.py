"""Email and SMS bodies for the side-effect tasks."""
from __future__ import annotations

import csv
import io
from html import escape

ORDER_STATUS_LABELS = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "in_production": "In Production",
    "ready_for_dispatch": "Ready for Dispatch",
    "dispatched": "Dispatched",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}


def _fmt_date(value) -> str:
    return value.strftime("%d %b %Y") if value else "TBD"


def _money(currency: str, amount) -> str:
    return f"{currency or 'USD'} {float(amount or 0):,.2f}"


def _wrap(title: str, body: str) -> str:
    return (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px;\">"
        f"<h2>{escape(title)}</h2>{body}"
        "<p style=\"color: #777;\">This is an automated message.</p></div>"
    )


def _parts_table(rows) -> str:
    cells = "".join(
        f"<tr><td>{escape(str(r.get('partRef') or '-'))}</td><td>{escape(str(r.get('material') or '-'))}</td>"
        f"<td>{escape(str(r.get('thickness') or '-'))}</td><td>{r.get('quantity') or 0}</td></tr>"
        for r in rows
    )
    return (
        "<table border=\"1\" cellpadding=\"4\" cellspacing=\"0\">"
        "<tr><th>Part</th><th>Material</th><th>Thickness</th><th>Qty</th></tr>"
        f"{cells}</table>"
    )


def inquiry_parts_csv(inquiry) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Part Ref", "Material", "Thickness", "Grade", "Quantity", "Remarks"])
    for part in inquiry.parts:
        writer.writerow([part.part_ref, part.material, part.thickness, part.grade, part.quantity, part.remarks])
    return buffer.getvalue().encode("utf-8")


def inquiry_backoffice_email(inquiry) -> tuple[str, str]:
    customer = inquiry.customer
    address = inquiry.delivery_address
    body = (
        f"<p>Inquiry <strong>{escape(inquiry.inquiry_number)}</strong> was submitted by "
        f"{escape(customer.full_name)} ({escape(customer.email)}"
        f"{', ' + escape(customer.company_name) if customer.company_name else ''}).</p>"
        f"{_parts_table([p.to_dict() for p in inquiry.parts])}"
        f"<p>Files: {len(inquiry.files)}</p>"
        f"<p>Deliver to: {escape(', '.join(v for v in address.values() if v))}</p>"
        f"<p>Special instructions: {escape(inquiry.special_instructions or '-')}</p>"
    )
    return f"New Inquiry {inquiry.inquiry_number}", _wrap("New Inquiry Received", body)


def inquiry_customer_email(inquiry) -> tuple[str, str]:
    body = (
        f"<p>Dear {escape(inquiry.customer.full_name)},</p>"
        f"<p>We have received your inquiry <strong>{escape(inquiry.inquiry_number)}</strong> "
        f"with {len(inquiry.parts)} part(s). Our team will review it and send you a quotation.</p>"
    )
    return f"Inquiry {inquiry.inquiry_number} received", _wrap("Inquiry Received", body)


def quotation_email(quotation, inquiry_number: str | None) -> tuple[str, str]:
    body = (
        f"<p>Dear {escape(quotation.customer_name or 'Customer')},</p>"
        f"<p>Your quotation <strong>{escape(quotation.quotation_number)}</strong>"
        f"{' for inquiry ' + escape(inquiry_number) if inquiry_number else ''} is ready.</p>"
        f"<p>Total amount: <strong>{_money(quotation.currency, quotation.total_amount)}</strong></p>"
        f"<p>Valid until: {_fmt_date(quotation.valid_until)}</p>"
        f"<p>{escape(quotation.terms or '')}</p>"
    )
    return f"Quotation {quotation.quotation_number}", _wrap("Your Quotation", body)


def quotation_sms(quotation, inquiry_number: str | None) -> str:
    return (
        f"Your quotation for inquiry {inquiry_number or quotation.quotation_number} has been prepared. "
        f"Total amount: {_money(quotation.currency, quotation.total_amount)}. Please check your email for details."
    )


def admin_payment_email(order) -> tuple[str, str]:
    payment = order.payment
    body = (
        f"<p>Order <strong>{escape(order.order_number)}</strong> was placed by "
        f"{escape(order.customer.full_name)}.</p>"
        f"<p>Amount: {_money(order.currency, order.total_amount)}<br>"
        f"Payment method: {escape(payment.method)}<br>Payment status: {escape(payment.status)}</p>"
    )
    return f"Payment update for order {order.order_number}", _wrap("Order Payment", body)


def customer_payment_email(order) -> tuple[str, str]:
    body = (
        f"<p>Dear {escape(order.customer.full_name)},</p>"
        f"<p>We received your payment of {_money(order.currency, order.payment.amount or order.total_amount)} "
        f"for order <strong>{escape(order.order_number)}</strong>.</p>"
        f"<p>Transaction ID: {escape(order.payment.transaction_id or '-')}</p>"
    )
    return f"Payment confirmed for order {order.order_number}", _wrap("Payment Successful", body)


def order_status_email(order, old_status: str | None, new_status: str) -> tuple[str, str]:
    label = ORDER_STATUS_LABELS.get(new_status, new_status)
    body = (
        f"<p>Dear {escape(order.customer.full_name)},</p>"
        f"<p>The status of your order <strong>{escape(order.order_number)}</strong> changed "
        f"from {escape(ORDER_STATUS_LABELS.get(old_status, old_status or '-'))} to <strong>{escape(label)}</strong>.</p>"
    )
    if new_status == "in_production" and order.production and order.production.estimated_completion:
        body += f"<p>Estimated completion: {_fmt_date(order.production.estimated_completion)}</p>"
    if new_status == "cancelled" and order.payment and order.payment.status == "refunded":
        body += "<p>Any payment made for this order will be refunded.</p>"
    return f"Order {order.order_number}: {label}", _wrap("Order Status Update", body)


def dispatch_email(order) -> tuple[str, str]:
    dispatch = order.dispatch
    body = (
        f"<p>Dear {escape(order.customer.full_name)},</p>"
        f"<p>Your order <strong>{escape(order.order_number)}</strong> has been dispatched.</p>"
        f"<p>Courier: {escape(dispatch.courier or '-')}<br>"
        f"Tracking number: {escape(dispatch.tracking_number or '-')}<br>"
        f"Estimated delivery: {_fmt_date(dispatch.estimated_delivery)}</p>"
    )
    return f"Order {order.order_number} dispatched", _wrap("Order Dispatched", body)


def dispatch_sms(order) -> str:
    dispatch = order.dispatch
    return (
        f"Order {order.order_number} dispatched via {dispatch.courier or 'courier'}. "
        f"Tracking: {dispatch.tracking_number or 'TBD'}. ETA: {_fmt_date(dispatch.estimated_delivery)}."
    )


def delivery_email(order) -> tuple[str, str]:
    body = (
        f"<p>Dear {escape(order.customer.full_name)},</p>"
        f"<p>Your order <strong>{escape(order.order_number)}</strong> was delivered on "
        f"{_fmt_date(order.dispatch.actual_delivery if order.dispatch else None)}. Thank you for your business.</p>"
    )
    return f"Order {order.order_number} delivered", _wrap("Order Delivered", body)


def delivery_sms(order) -> str:
    return f"Order {order.order_number} has been delivered. Thank you for choosing us."
