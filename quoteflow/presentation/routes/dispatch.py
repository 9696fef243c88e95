"""
Dispatch routes
Shipping desk: ready list, dispatch records, delivery confirmation and public tracking
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user

from quoteflow.auth import require_back_office
from quoteflow.business.orders.order_context import OrderContext
from quoteflow.presentation.routes.helpers import dispatch_event, json_body, page_payload, parse_datetime
from quoteflow.services.dispatch_service import DispatchService
from quoteflow.utils.logger import get_logger

bp = Blueprint('dispatch', __name__)
logger = get_logger("quoteflow.routes.dispatch")


@bp.route('/ready', methods=['GET'])
@require_back_office
def ready_orders():
    orders = DispatchService.ready_for_dispatch()
    return jsonify({'success': True, 'orders': [order.to_dict() for order in orders], 'count': len(orders)})


@bp.route('', methods=['GET'])
@require_back_office
def dispatched_orders():
    page, _ = DispatchService.get_list_data(request)
    return jsonify(page_payload('orders', page))


@bp.route('/<int:order_id>', methods=['POST'])
@require_back_office
def record_dispatch(order_id):
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
    logger.info(f"Order {context.order.order_number} dispatched by {current_user.username}")

    return jsonify({
        'success': True,
        'message': 'Dispatch recorded successfully',
        'order': context.order.to_dict(),
    }), 201


@bp.route('/<int:order_id>', methods=['PUT'])
@require_back_office
def update_dispatch(order_id):
    data = json_body()
    context = OrderContext(order_id)
    context.update_dispatch(
        courier=data.get('courier'),
        tracking_number=data.get('trackingNumber'),
        estimated_delivery=parse_datetime(data.get('estimatedDelivery'), 'estimatedDelivery'),
        notes=data.get('notes'),
    )
    dispatch_event('dispatch_updated', order_id)

    return jsonify({
        'success': True,
        'message': 'Dispatch details updated successfully',
        'order': context.order.to_dict(),
    })


@bp.route('/<int:order_id>/delivered', methods=['POST'])
@require_back_office
def mark_delivered(order_id):
    data = json_body()
    context = OrderContext(order_id)
    context.mark_delivered(
        actual_delivery=parse_datetime(data.get('actualDelivery'), 'actualDelivery'),
        notes=data.get('notes'),
        actor_id=current_user.id,
    )
    dispatch_event('delivery_confirmed', order_id)

    return jsonify({
        'success': True,
        'message': 'Order marked as delivered',
        'order': context.order.to_dict(),
    })


@bp.route('/<int:order_id>/tracking', methods=['GET'])
def tracking(order_id):
    """Public; no login required"""
    return jsonify({'success': True, 'tracking': OrderContext(order_id).tracking_info()})
