"""
Realtime routes
Long-poll style delivery of queued push events for the current user
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from quoteflow.integrations import get_integrations

bp = Blueprint('realtime', __name__)


@bp.route('/poll', methods=['GET'])
@login_required
def poll():
    """Registers the caller as connected and returns everything queued since the last poll"""
    hub = get_integrations().realtime
    hub.connect(current_user.id, current_user.role)
    return jsonify({'success': True, 'events': hub.drain(current_user.id)})


@bp.route('/disconnect', methods=['POST'])
@login_required
def disconnect():
    get_integrations().realtime.disconnect(current_user.id)
    return jsonify({'success': True})
