from quoteflow import db
from quoteflow.data.core.user_created_base import isoformat


class OrderProduction(db.Model):
    __tablename__ = 'order_productions'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), unique=True, nullable=False)
    start_date = db.Column(db.DateTime)
    estimated_completion = db.Column(db.DateTime)
    actual_completion = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    order = db.relationship('Order', back_populates='production')

    def to_dict(self):
        return {
            'startDate': isoformat(self.start_date),
            'estimatedCompletion': isoformat(self.estimated_completion),
            'actualCompletion': isoformat(self.actual_completion),
            'notes': self.notes,
        }
