"""
Order routes
Order creation from accepted quotations and the back-office lifecycle endpoints
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from quoteflow.auth import require_back_office, require_role
from quoteflow.business.orders.order_context import OrderContext
from quoteflow.business.orders.order_factory import OrderFactory
from quoteflow.business.quotations import QuotationContext
from quoteflow.errors import ValidationError
from quoteflow.integrations import get_integrations
from quoteflow.presentation.routes.helpers import dispatch_event, json_body, page_payload, parse_datetime, parse_id
from quoteflow.services.order_service import OrderService
from quoteflow.utils.logger import get_logger
from quoteflow.utils.logging_sanitizer import sanitize_dict

bp = Blueprint('orders', __name__)
logger = get_logger("quoteflow.routes.orders")


def _announce(change):
    if change.changed:
        dispatch_event('order_status_changed', change.entity_id, {
            'oldStatus': change.from_status,
            'newStatus': change.to_status,
        })


@bp.route('', methods=['POST'])
@login_required
def create_order():
    """
    Create an order from an accepted quotation.

    Body: quotationId, amount, paymentMethod (online | cod | direct), and
    optionally parts, deliveryAddress, specialInstructions, notes, transactionId.
    """
    data = json_body()
    logger.debug(f"Order create by {current_user.username}: {sanitize_dict(data)}")
    if not data.get('quotationId'):
        raise ValidationError("quotationId is required")

    quotation_id = parse_id(data['quotationId'], 'quotationId')
    QuotationContext(quotation_id).check_access(current_user)

    order = OrderFactory().create_from_quotation(
        quotation_id,
        amount=data.get('amount'),
        payment_method=data.get('paymentMethod', 'online'),
        actor_id=current_user.id,
        parts=data.get('parts'),
        delivery_address=data.get('deliveryAddress'),
        special_instructions=data.get('specialInstructions'),
        notes=data.get('notes'),
        transaction_id=data.get('transactionId'),
    )
    # online orders are announced once the gateway payment is verified
    if order.status != 'pending':
        dispatch_event('order_created', order.id)

    return jsonify({
        'success': True,
        'message': 'Order created successfully',
        'order': order.to_dict(),
    }), 201


@bp.route('', methods=['GET'])
@require_back_office
def list_orders():
    page, _ = OrderService.get_list_data(request)
    return jsonify(page_payload('orders', page, {'statusCounts': OrderService.status_counts()}))


@bp.route('/customer', methods=['GET'])
@require_role('customer')
def my_orders():
    page, _ = OrderService.get_list_data(request, customer_id=current_user.id)
    return jsonify(page_payload('orders', page))


@bp.route('/customer/<int:customer_id>', methods=['GET'])
@require_back_office
def customer_orders(customer_id):
    page, _ = OrderService.get_list_data(request, customer_id=customer_id)
    return jsonify(page_payload('orders', page))


@bp.route('/<int:order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    order = OrderContext(order_id).check_access(current_user)
    return jsonify({'success': True, 'order': order.to_dict()})


@bp.route('/<int:order_id>/status', methods=['PUT'])
@require_back_office
def update_status(order_id):
    data = json_body()
    if not data.get('status'):
        raise ValidationError("status is required")

    context = OrderContext(order_id)
    change = context.update_status(data['status'], actor_id=current_user.id, notes=data.get('notes'))
    _announce(change)

    return jsonify({
        'success': True,
        'message': 'Order status updated successfully' if change.changed else 'Order status unchanged',
        'order': context.order.to_dict(),
    })


@bp.route('/<int:order_id>/delivery-time', methods=['PUT'])
@require_back_office
def update_delivery_time(order_id):
    data = json_body()
    estimated = parse_datetime(data.get('estimatedCompletion'), 'estimatedCompletion', required=True)

    context = OrderContext(order_id)
    changes = context.set_delivery_time(estimated, notes=data.get('notes'), actor_id=current_user.id)
    for change in changes:
        _announce(change)
    dispatch_event('delivery_time_updated', order_id)

    return jsonify({
        'success': True,
        'message': 'Delivery time updated successfully',
        'order': context.order.to_dict(),
    })


@bp.route('/<int:order_id>/dispatch', methods=['PUT'])
@require_back_office
def dispatch_order(order_id):
    data = json_body()
    context = OrderContext(order_id)
    context.record_dispatch(
        courier=data.get('courier'),
        tracking_number=data.get('trackingNumber'),
        estimated_delivery=parse_datetime(data.get('estimatedDelivery'), 'estimatedDelivery'),
        notes=data.get('notes'),
        actor_id=current_user.id,
    )
    dispatch_event('dispatch_recorded', order_id)

    return jsonify({
        'success': True,
        'message': 'Order dispatched successfully',
        'order': context.order.to_dict(),
    })


@bp.route('/<int:order_id>/refund', methods=['POST'])
@require_back_office
def refund_order(order_id):
    data = json_body()
    context = OrderContext(order_id)
    change = context.refund(
        get_integrations().payments,
        amount=data.get('amount'),
        reason=data.get('reason'),
        actor_id=current_user.id,
    )
    _announce(change)

    return jsonify({
        'success': True,
        'message': 'Order refunded and cancelled',
        'order': context.order.to_dict(),
    })
