from datetime import datetime

from quoteflow import db
from quoteflow.data.core.user_created_base import isoformat


class Notification(db.Model):
    __tablename__ = 'notifications'

    TYPES = ('success', 'warning', 'error', 'info')
    RELATED_ENTITY_TYPES = ('inquiry', 'quotation', 'order', 'payment')

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(10), nullable=False, default='info')
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime)
    # weak reference; the target may be deleted independently
    related_entity_type = db.Column(db.String(20))
    related_entity_id = db.Column(db.Integer)
    metadata_json = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        related = None
        if self.related_entity_type:
            related = {'type': self.related_entity_type, 'entityId': self.related_entity_id}
        return {
            'id': self.id,
            'userId': self.user_id,
            'title': self.title,
            'message': self.message,
            'type': self.type,
            'isRead': self.is_read,
            'readAt': isoformat(self.read_at),
            'relatedEntity': related,
            'metadata': self.metadata_json or {},
            'createdAt': isoformat(self.created_at),
        }
