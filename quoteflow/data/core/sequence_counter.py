from quoteflow import db
from quoteflow.data.core.user_created_base import UserCreatedBase


class SequenceCounter(UserCreatedBase):
    """
    One row per numbered entity type.

    ``current_number`` is the last number handed out; the next identifier uses
    ``current_number + 1``. It only ever moves forward.
    """
    __tablename__ = 'sequence_counters'

    DEFAULTS = {
        'inquiry': {'prefix': 'INQ', 'start_number': 1200},
        'quotation': {'prefix': 'QTN', 'start_number': 500},
        'order': {'prefix': 'ORD', 'start_number': 800},
    }
    MAX_PREFIX_LENGTH = 6
    MAX_SEPARATOR_LENGTH = 2

    entity_type = db.Column(db.String(20), unique=True, nullable=False)
    prefix = db.Column(db.String(6), nullable=False)
    separator = db.Column(db.String(2), nullable=False, default='-')
    include_year_suffix = db.Column(db.Boolean, nullable=False, default=True)
    start_number = db.Column(db.Integer, nullable=False, default=0)
    current_number = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'entityType': self.entity_type,
            'prefix': self.prefix,
            'separator': self.separator,
            'includeYearSuffix': self.include_year_suffix,
            'startNumber': self.start_number,
            'currentNumber': self.current_number,
        }
