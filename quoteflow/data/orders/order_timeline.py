from datetime import datetime

from quoteflow import db
from quoteflow.data.core.user_created_base import isoformat


class OrderTimelineEntry(db.Model):
    """Append-only history of order status changes."""
    __tablename__ = 'order_timeline'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False)
    description = db.Column(db.String(255))
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    order = db.relationship('Order', back_populates='timeline')

    def to_dict(self):
        return {
            'status': self.status,
            'description': self.description,
            'timestamp': isoformat(self.timestamp),
            'updatedBy': self.actor_id,
        }
