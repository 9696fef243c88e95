from quoteflow import db
from quoteflow.data.core.user_created_base import UserCreatedBase, isoformat


class Order(UserCreatedBase):
    __tablename__ = 'orders'

    STATUSES = (
        'pending',
        'confirmed',
        'in_production',
        'ready_for_dispatch',
        'dispatched',
        'delivered',
        'cancelled',
    )

    order_number = db.Column(db.String(40), unique=True, nullable=False)
    quotation_id = db.Column(db.Integer, db.ForeignKey('quotations.id'), unique=True, nullable=False)
    inquiry_id = db.Column(db.Integer, db.ForeignKey('inquiries.id'), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    total_amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default='USD')
    status = db.Column(db.String(30), nullable=False, default='pending')
    confirmed_at = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    delivery_street = db.Column(db.String(255))
    delivery_city = db.Column(db.String(120))
    delivery_state = db.Column(db.String(120))
    delivery_country = db.Column(db.String(120))
    delivery_zip_code = db.Column(db.String(20))
    special_instructions = db.Column(db.Text)

    customer = db.relationship('User', foreign_keys=[customer_id])
    quotation = db.relationship('Quotation', foreign_keys=[quotation_id])
    inquiry = db.relationship('Inquiry', foreign_keys=[inquiry_id])

    parts = db.relationship(
        'OrderPart', order_by='OrderPart.position', cascade='all, delete-orphan', back_populates='order'
    )
    payment = db.relationship('OrderPayment', uselist=False, cascade='all, delete-orphan', back_populates='order')
    production = db.relationship(
        'OrderProduction', uselist=False, cascade='all, delete-orphan', back_populates='order'
    )
    dispatch = db.relationship('OrderDispatch', uselist=False, cascade='all, delete-orphan', back_populates='order')
    timeline = db.relationship(
        'OrderTimelineEntry',
        order_by='OrderTimelineEntry.id',
        cascade='all, delete-orphan',
        back_populates='order',
    )

    @property
    def delivery_address(self) -> dict:
        return {
            'street': self.delivery_street,
            'city': self.delivery_city,
            'state': self.delivery_state,
            'country': self.delivery_country,
            'zipCode': self.delivery_zip_code,
        }

    @delivery_address.setter
    def delivery_address(self, address: dict):
        address = address or {}
        self.delivery_street = address.get('street')
        self.delivery_city = address.get('city')
        self.delivery_state = address.get('state')
        self.delivery_country = address.get('country')
        self.delivery_zip_code = address.get('zipCode')

    def to_dict(self):
        return {
            'id': self.id,
            'orderNumber': self.order_number,
            'quotationId': self.quotation_id,
            'inquiryId': self.inquiry_id,
            'customerId': self.customer_id,
            'parts': [part.to_dict() for part in self.parts],
            'totalAmount': self.total_amount,
            'currency': self.currency,
            'status': self.status,
            'confirmedAt': isoformat(self.confirmed_at),
            'deliveryAddress': self.delivery_address,
            'specialInstructions': self.special_instructions,
            'notes': self.notes,
            'payment': self.payment.to_dict() if self.payment else None,
            'production': self.production.to_dict() if self.production else None,
            'dispatch': self.dispatch.to_dict() if self.dispatch else None,
            'timeline': [entry.to_dict() for entry in self.timeline],
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Order {self.order_number} {self.status}>'
