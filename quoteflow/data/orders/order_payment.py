from quoteflow import db
from quoteflow.data.core.user_created_base import isoformat


class OrderPayment(db.Model):
    __tablename__ = 'order_payments'

    METHODS = ('pending', 'credit_card', 'debit_card', 'bank_transfer', 'paypal', 'razorpay', 'cod', 'direct')
    STATUSES = ('pending', 'processing', 'completed', 'failed', 'refunded')

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), unique=True, nullable=False)
    method = db.Column(db.String(20), nullable=False, default='pending')
    status = db.Column(db.String(20), nullable=False, default='pending')
    transaction_id = db.Column(db.String(120))
    gateway_order_id = db.Column(db.String(120))
    refund_id = db.Column(db.String(120))
    gateway = db.Column(db.String(40))
    amount = db.Column(db.Float)
    paid_at = db.Column(db.DateTime)

    order = db.relationship('Order', back_populates='payment')

    def to_dict(self):
        return {
            'method': self.method,
            'status': self.status,
            'transactionId': self.transaction_id,
            'gatewayOrderId': self.gateway_order_id,
            'refundId': self.refund_id,
            'gateway': self.gateway,
            'amount': self.amount,
            'paidAt': isoformat(self.paid_at),
        }
