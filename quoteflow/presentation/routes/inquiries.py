"""
Inquiry routes
Customer submissions and back-office review
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from quoteflow.auth import require_back_office, require_role
from quoteflow.business.inquiries import InquiryContext, InquiryFactory
from quoteflow.presentation.routes.helpers import (
    dispatch_event,
    form_or_json,
    json_body,
    page_payload,
    uploaded_files,
)
from quoteflow.services.inquiry_service import InquiryService
from quoteflow.utils.logger import get_logger
from quoteflow.utils.logging_sanitizer import sanitize_dict

bp = Blueprint('inquiries', __name__)
logger = get_logger("quoteflow.routes.inquiries")


@bp.route('', methods=['POST'])
@require_role('customer')
def create_inquiry():
    """Submit an inquiry as JSON or as a multipart form with drawings under ``files``"""
    data = form_or_json()
    logger.debug(f"Inquiry submission from user {current_user.id}: {sanitize_dict(data)}")

    inquiry = InquiryFactory.create(current_user, data, uploaded_files())
    dispatch_event('inquiry_created', inquiry.id)

    return jsonify({
        'success': True,
        'message': 'Inquiry submitted successfully',
        'inquiry': inquiry.to_dict(),
    }), 201


@bp.route('', methods=['GET'])
@login_required
def list_inquiries():
    """Customers see their own inquiries; back office sees all"""
    customer_id = None if current_user.is_back_office else current_user.id
    page, _ = InquiryService.get_list_data(request, customer_id=customer_id)
    return jsonify(page_payload('inquiries', page))


@bp.route('/<int:inquiry_id>', methods=['GET'])
@login_required
def get_inquiry(inquiry_id):
    context = InquiryContext(inquiry_id)
    inquiry = context.check_access(current_user)
    if current_user.is_back_office:
        context.mark_reviewed(current_user)
    return jsonify({'success': True, 'inquiry': inquiry.to_dict()})


@bp.route('/<int:inquiry_id>', methods=['PUT'])
@require_role('customer')
def update_inquiry(inquiry_id):
    data = json_body()
    logger.debug(f"Customer update of inquiry {inquiry_id}: {sanitize_dict(data)}")
    inquiry = InquiryContext(inquiry_id).update_by_customer(current_user, data)
    return jsonify({'success': True, 'message': 'Inquiry updated successfully', 'inquiry': inquiry.to_dict()})


@bp.route('/<int:inquiry_id>', methods=['DELETE'])
@require_role('customer')
def delete_inquiry(inquiry_id):
    InquiryContext(inquiry_id).delete_by_customer(current_user)
    return jsonify({'success': True, 'message': 'Inquiry deleted successfully'})


@bp.route('/admin/<int:inquiry_id>', methods=['PUT'])
@require_back_office
def admin_update_inquiry(inquiry_id):
    data = json_body()
    logger.debug(f"Back-office update of inquiry {inquiry_id}: {sanitize_dict(data)}")
    inquiry = InquiryContext(inquiry_id).update_by_back_office(current_user, data)
    return jsonify({'success': True, 'message': 'Inquiry updated successfully', 'inquiry': inquiry.to_dict()})


@bp.route('/<int:inquiry_id>/files', methods=['POST'])
@bp.route('/<int:inquiry_id>/upload', methods=['POST'])
@login_required
def upload_files(inquiry_id):
    created = InquiryContext(inquiry_id).add_files(current_user, uploaded_files())
    return jsonify({
        'success': True,
        'message': f'{len(created)} file(s) uploaded',
        'files': [f.to_dict() for f in created],
    }), 201
