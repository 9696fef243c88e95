"""
Notification routes
Per-user inbox plus a back-office endpoint for sending notices
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from quoteflow import db
from quoteflow.auth import require_back_office
from quoteflow.business.notifications.notification_store import NotificationStore
from quoteflow.data.core.user import User
from quoteflow.data.notifications import Notification
from quoteflow.errors import NotFound, ValidationError
from quoteflow.presentation.routes.helpers import dispatch_event, json_body, parse_id

bp = Blueprint('notifications', __name__)


@bp.route('', methods=['GET'])
@login_required
def list_notifications():
    limit = request.args.get('limit', type=int)
    unread_only = request.args.get('unreadOnly', 'false').lower() in ('true', '1', 'yes', 'on')
    notifications = NotificationStore.list_for_user(current_user.id, limit, unread_only=unread_only)
    return jsonify({
        'success': True,
        'notifications': [n.to_dict() for n in notifications],
        'unreadCount': NotificationStore.unread_count(current_user.id),
    })


@bp.route('/unread-count', methods=['GET'])
@login_required
def unread_count():
    return jsonify({'success': True, 'count': NotificationStore.unread_count(current_user.id)})


@bp.route('/<int:notification_id>/read', methods=['PATCH'])
@login_required
def mark_read(notification_id):
    notification = NotificationStore.mark_read(notification_id, current_user.id)
    return jsonify({'success': True, 'notification': notification.to_dict()})


@bp.route('/read-all', methods=['PATCH'])
@login_required
def mark_all_read():
    updated = NotificationStore.mark_all_read(current_user.id)
    return jsonify({'success': True, 'message': f'{updated} notification(s) marked as read', 'updated': updated})


@bp.route('', methods=['POST'])
@require_back_office
def send_notification():
    """
    Queue a notice for one user or every active user of a role.

    Body: userId or role, title, message, type, relatedEntity {type, entityId}, metadata
    """
    data = json_body()
    title, message = data.get('title'), data.get('message')
    type_ = data.get('type', 'info')
    if not title or not message:
        raise ValidationError("title and message are required")
    if type_ not in Notification.TYPES:
        raise ValidationError(f"type must be one of: {', '.join(Notification.TYPES)}")
    related = data.get('relatedEntity')
    if related is not None and (not isinstance(related, dict)
                                or related.get('type') not in Notification.RELATED_ENTITY_TYPES):
        raise ValidationError("relatedEntity must have a known type and an entityId")

    if data.get('userId'):
        user_id = parse_id(data['userId'], 'userId')
        if db.session.get(User, user_id) is None:
            raise NotFound("User not found")
        user_ids = [user_id]
    elif data.get('role') in User.ROLES:
        user_ids = [user.id for user in User.with_roles(data['role'])]
    else:
        raise ValidationError("userId or a valid role is required")

    context = {
        'title': title,
        'message': message,
        'type': type_,
        'relatedEntity': related,
        'metadata': data.get('metadata') or {},
    }
    for user_id in user_ids:
        dispatch_event('manual_notification', user_id, context)

    return jsonify({'success': True, 'message': 'Notification queued', 'recipients': len(user_ids)}), 202
