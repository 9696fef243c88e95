from quoteflow import db
from quoteflow.data.core.user_created_base import UserCreatedBase, isoformat


class Inquiry(UserCreatedBase):
    __tablename__ = 'inquiries'

    STATUSES = ('pending', 'reviewed', 'quoted', 'accepted', 'rejected')
    CUSTOMER_EDITABLE_STATUSES = ('pending', 'reviewed', 'quoted')

    inquiry_number = db.Column(db.String(40), unique=True, nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')

    delivery_street = db.Column(db.String(255))
    delivery_city = db.Column(db.String(120))
    delivery_state = db.Column(db.String(120))
    delivery_country = db.Column(db.String(120))
    delivery_zip_code = db.Column(db.String(20))

    special_instructions = db.Column(db.Text)
    expected_delivery_date = db.Column(db.Date)
    customer_notes = db.Column(db.Text)
    backoffice_notes = db.Column(db.Text)

    # weak reference, set once a quotation is raised
    quotation_id = db.Column(db.Integer, nullable=True)

    customer = db.relationship('User', foreign_keys=[customer_id])
    parts = db.relationship(
        'InquiryPart',
        order_by='InquiryPart.position',
        cascade='all, delete-orphan',
        back_populates='inquiry',
    )
    files = db.relationship(
        'InquiryFile',
        order_by='InquiryFile.id',
        cascade='all, delete-orphan',
        back_populates='inquiry',
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

    @property
    def total_quantity(self) -> int:
        return sum(part.quantity or 0 for part in self.parts)

    def to_dict(self):
        return {
            'id': self.id,
            'inquiryNumber': self.inquiry_number,
            'customerId': self.customer_id,
            'status': self.status,
            'parts': [part.to_dict() for part in self.parts],
            'files': [f.to_dict() for f in self.files],
            'deliveryAddress': self.delivery_address,
            'specialInstructions': self.special_instructions,
            'expectedDeliveryDate': isoformat(self.expected_delivery_date),
            'customerNotes': self.customer_notes,
            'backofficeNotes': self.backoffice_notes,
            'quotationId': self.quotation_id,
            'totalParts': len(self.parts),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f'<Inquiry {self.inquiry_number} {self.status}>'
