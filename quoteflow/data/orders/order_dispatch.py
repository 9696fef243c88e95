from quoteflow import db
from quoteflow.data.core.user_created_base import isoformat


class OrderDispatch(db.Model):
    __tablename__ = 'order_dispatches'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), unique=True, nullable=False)
    courier = db.Column(db.String(120))
    tracking_number = db.Column(db.String(120))
    dispatched_at = db.Column(db.DateTime)
    estimated_delivery = db.Column(db.DateTime)
    actual_delivery = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    order = db.relationship('Order', back_populates='dispatch')

    @property
    def has_tracking(self) -> bool:
        return bool(self.tracking_number)

    def to_dict(self):
        return {
            'courier': self.courier,
            'trackingNumber': self.tracking_number,
            'dispatchedAt': isoformat(self.dispatched_at),
            'estimatedDelivery': isoformat(self.estimated_delivery),
            'actualDelivery': isoformat(self.actual_delivery),
            'notes': self.notes,
        }
