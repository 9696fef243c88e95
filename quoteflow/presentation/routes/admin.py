"""
Admin routes
Document numbering (nomenclature) settings
"""

from flask import Blueprint, jsonify
from flask_login import current_user

from quoteflow.auth import require_role
from quoteflow.business.core.persistence import commit
from quoteflow.data.core.sequence_counter import SequenceCounter
from quoteflow.data.core.sequence_generator import SequenceGenerator
from quoteflow.errors import ValidationError
from quoteflow.presentation.routes.helpers import json_body
from quoteflow.utils.logger import get_logger

bp = Blueprint('admin', __name__)
logger = get_logger("quoteflow.routes.admin")


def _settings() -> dict:
    settings = {}
    for entity_type in SequenceCounter.DEFAULTS:
        counter = SequenceGenerator.ensure_counter(entity_type)
        settings[entity_type] = dict(counter.to_dict(), nextId=SequenceGenerator.preview_next_id(entity_type))
    return settings


@bp.route('/nomenclature', methods=['GET'])
@require_role('admin')
def get_nomenclature():
    settings = _settings()
    commit("initialise sequence counters")
    return jsonify({'success': True, 'nomenclature': settings})


@bp.route('/nomenclature', methods=['PUT'])
@require_role('admin')
def update_nomenclature():
    """
    Body keyed by entity type, e.g.
    {"order": {"prefix": "SO", "startNumber": 5000, "separator": "/", "includeYearSuffix": false}}
    """
    data = json_body()
    unknown = [key for key in data if key not in SequenceCounter.DEFAULTS]
    if unknown:
        raise ValidationError(f"Unknown entity types: {', '.join(unknown)}")

    for entity_type, values in data.items():
        if not isinstance(values, dict):
            raise ValidationError(f"Settings for {entity_type} must be an object")
        start_number = values.get('startNumber')
        try:
            start_number = int(start_number) if start_number is not None else None
        except (TypeError, ValueError):
            raise ValidationError(f"{entity_type}.startNumber must be a whole number")
        SequenceGenerator.configure(
            entity_type,
            prefix=values.get('prefix'),
            start_number=start_number,
            separator=values.get('separator'),
            include_year_suffix=values.get('includeYearSuffix'),
            updated_by_id=current_user.id,
        )
    commit("update nomenclature")
    logger.info(f"Nomenclature updated by {current_user.username}: {', '.join(data)}")
    return jsonify({'success': True, 'message': 'Nomenclature updated', 'nomenclature': _settings()})


@bp.route('/nomenclature/preview', methods=['GET'])
@require_role('admin', 'backoffice', 'subadmin')
def preview_nomenclature():
    previews = {entity_type: SequenceGenerator.preview_next_id(entity_type) for entity_type in SequenceCounter.DEFAULTS}
    commit("initialise sequence counters")
    return jsonify({'success': True, 'preview': previews})
