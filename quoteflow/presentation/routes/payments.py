"""
Payment routes
Gateway checkout for online orders
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from quoteflow.business.core.persistence import commit
from quoteflow.business.orders.order_context import OrderContext
from quoteflow.errors import ValidationError
from quoteflow.integrations import get_integrations
from quoteflow.presentation.routes.helpers import dispatch_event, json_body, parse_id
from quoteflow.utils.logger import get_logger
from quoteflow.utils.logging_sanitizer import sanitize_dict

bp = Blueprint('payments', __name__)
logger = get_logger("quoteflow.routes.payments")


def _order_context(data: dict) -> OrderContext:
    if data.get('orderId'):
        return OrderContext(parse_id(data['orderId'], 'orderId'))
    if data.get('quotationId'):
        return OrderContext.by_quotation(parse_id(data['quotationId'], 'quotationId'))
    raise ValidationError("orderId or quotationId is required")


@bp.route('/create-order', methods=['POST'])
@login_required
def create_gateway_order():
    """Open a gateway checkout for a pending online order"""
    data = json_body()
    context = _order_context(data)
    order = context.check_access(current_user)
    if order.status != 'pending':
        raise ValidationError(f"Order {order.order_number} is not awaiting payment")

    checkout = get_integrations().payments.create_order(order.total_amount, order.currency, order.order_number)
    payment = context.status_manager.ensure_payment(order)
    payment.gateway = 'razorpay'
    payment.gateway_order_id = checkout['orderId']
    commit("record gateway order")

    return jsonify({'success': True, 'checkout': checkout, 'orderId': order.id})


@bp.route('/verify', methods=['POST'])
@login_required
def verify_payment():
    """
    Gateway callback relay.

    Body: orderId or quotationId, razorpayOrderId, razorpayPaymentId, razorpaySignature
    """
    data = json_body()
    logger.debug(f"Payment verification: {sanitize_dict(data)}")
    for field in ('razorpayOrderId', 'razorpayPaymentId', 'razorpaySignature'):
        if not data.get(field):
            raise ValidationError(f"{field} is required")

    context = _order_context(data)
    context.check_access(current_user)
    change = context.verify_payment(
        get_integrations().payments,
        gateway_order_id=data['razorpayOrderId'],
        payment_id=data['razorpayPaymentId'],
        signature=data['razorpaySignature'],
        actor_id=current_user.id,
    )
    if change.changed:
        dispatch_event('payment_verified', context.order.id)

    return jsonify({
        'success': True,
        'message': 'Payment verified successfully',
        'order': context.order.to_dict(),
    })
