from quoteflow import db
from quoteflow.data.core.user_created_base import UserCreatedBase, isoformat


class Quotation(UserCreatedBase):
    __tablename__ = 'quotations'

    STATUSES = ('draft', 'created', 'uploaded', 'sent', 'accepted', 'rejected', 'order_created')
    DEFAULT_TERMS = 'Standard manufacturing terms apply. Payment required before production begins.'

    quotation_number = db.Column(db.String(40), unique=True, nullable=False)
    # plain identifier; inquiries may be removed independently
    inquiry_id = db.Column(db.Integer, nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    # snapshot taken when the quotation is raised
    customer_name = db.Column(db.String(200))
    customer_company = db.Column(db.String(200))
    customer_email = db.Column(db.String(120))
    customer_phone = db.Column(db.String(30))

    total_amount = db.Column(db.Float, nullable=False, default=0.0)
    currency = db.Column(db.String(3), nullable=False, default='USD')
    status = db.Column(db.String(20), nullable=False, default='draft')
    pdf_locator = db.Column(db.String(500))
    valid_until = db.Column(db.DateTime)
    terms = db.Column(db.Text)
    notes = db.Column(db.Text)

    sent_at = db.Column(db.DateTime)
    accepted_at = db.Column(db.DateTime)
    rejected_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)
    order_created_at = db.Column(db.DateTime)
    order_id = db.Column(db.Integer, nullable=True)

    customer = db.relationship('User', foreign_keys=[customer_id])
    items = db.relationship(
        'QuotationItem',
        order_by='QuotationItem.position',
        cascade='all, delete-orphan',
        back_populates='quotation',
    )

    @property
    def customer_info(self) -> dict:
        return {
            'name': self.customer_name,
            'company': self.customer_company,
            'email': self.customer_email,
            'phone': self.customer_phone,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'quotationNumber': self.quotation_number,
            'inquiryId': self.inquiry_id,
            'customerId': self.customer_id,
            'customerInfo': self.customer_info,
            'items': [item.to_dict() for item in self.items],
            'totalAmount': self.total_amount,
            'currency': self.currency,
            'status': self.status,
            'hasPdf': bool(self.pdf_locator),
            'validUntil': isoformat(self.valid_until),
            'terms': self.terms,
            'notes': self.notes,
            'sentAt': isoformat(self.sent_at),
            'acceptedAt': isoformat(self.accepted_at),
            'rejectedAt': isoformat(self.rejected_at),
            'rejectionReason': self.rejection_reason,
            'orderCreatedAt': isoformat(self.order_created_at),
            'orderId': self.order_id,
            'createdAt': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Quotation {self.quotation_number} {self.status}>'
