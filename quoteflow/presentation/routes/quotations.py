"""
Quotation routes
Back office raises and sends quotations; customers accept or reject them
"""

import io

from flask import Blueprint, jsonify, request, send_file
from flask_login import current_user, login_required

from quoteflow.auth import require_back_office, require_role
from quoteflow.business.quotations import QuotationContext, QuotationFactory
from quoteflow.errors import ValidationError
from quoteflow.presentation.routes.helpers import dispatch_event, json_body, page_payload, parse_id
from quoteflow.services.quotation_service import QuotationService
from quoteflow.utils.logger import get_logger
from quoteflow.utils.logging_sanitizer import sanitize_dict

bp = Blueprint('quotations', __name__)
logger = get_logger("quoteflow.routes.quotations")


@bp.route('', methods=['POST'])
@require_back_office
def create_quotation():
    data = json_body()
    logger.debug(f"Quotation create by {current_user.username}: {sanitize_dict(data)}")
    if not data.get('inquiryId'):
        raise ValidationError("inquiryId is required")

    quotation = QuotationFactory.create(parse_id(data['inquiryId'], 'inquiryId'), data, actor=current_user)
    dispatch_event('quotation_created', quotation.id)

    return jsonify({
        'success': True,
        'message': 'Quotation created successfully',
        'quotation': quotation.to_dict(),
    }), 201


@bp.route('', methods=['GET'])
@login_required
def list_quotations():
    customer_id = None if current_user.is_back_office else current_user.id
    page, _ = QuotationService.get_list_data(request, customer_id=customer_id)
    return jsonify(page_payload('quotations', page))


@bp.route('/<int:quotation_id>', methods=['GET'])
@login_required
def get_quotation(quotation_id):
    quotation = QuotationContext(quotation_id).check_access(current_user)
    return jsonify({'success': True, 'quotation': quotation.to_dict()})


@bp.route('/<int:quotation_id>', methods=['PUT'])
@require_back_office
def update_quotation(quotation_id):
    data = json_body()
    logger.debug(f"Quotation {quotation_id} update: {sanitize_dict(data)}")
    quotation = QuotationContext(quotation_id).update_pricing(data, actor_id=current_user.id)
    return jsonify({'success': True, 'message': 'Quotation updated successfully', 'quotation': quotation.to_dict()})


@bp.route('/<int:quotation_id>/pdf', methods=['PUT'])
@require_back_office
def attach_pdf(quotation_id):
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise ValidationError("A PDF file is required")
    quotation = QuotationContext(quotation_id).attach_pdf(upload.read(), upload.filename, actor_id=current_user.id)
    return jsonify({'success': True, 'message': 'PDF attached', 'quotation': quotation.to_dict()})


@bp.route('/<int:quotation_id>/pdf', methods=['GET'])
@login_required
def download_pdf(quotation_id):
    context = QuotationContext(quotation_id)
    quotation = context.check_access(current_user)
    return send_file(
        io.BytesIO(context.read_pdf()),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{quotation.quotation_number}.pdf",
    )


@bp.route('/<int:quotation_id>/send', methods=['POST'])
@require_back_office
def send_quotation(quotation_id):
    change = QuotationContext(quotation_id).send(actor_id=current_user.id)
    dispatch_event('quotation_sent', quotation_id)
    return jsonify({
        'success': True,
        'message': 'Quotation sent to customer',
        'status': change.to_status,
    })


@bp.route('/<int:quotation_id>/response', methods=['POST'])
@require_role('customer')
def respond_to_quotation(quotation_id):
    """Body: {"action": "accept" | "reject", "rejectionReason": "..."}"""
    data = json_body()
    context = QuotationContext(quotation_id)
    change = context.respond(current_user, data.get('action'), data.get('rejectionReason'))
    dispatch_event('quotation_responded', quotation_id)
    return jsonify({
        'success': True,
        'message': f'Quotation {change.to_status}',
        'quotation': context.quotation.to_dict(),
    })
