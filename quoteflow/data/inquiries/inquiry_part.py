from quoteflow import db


class InquiryPart(db.Model):
    __tablename__ = 'inquiry_parts'

    id = db.Column(db.Integer, primary_key=True)
    inquiry_id = db.Column(db.Integer, db.ForeignKey('inquiries.id'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    part_ref = db.Column(db.String(120))
    material = db.Column(db.String(120), nullable=False)
    thickness = db.Column(db.String(40), nullable=False)
    grade = db.Column(db.String(60))
    quantity = db.Column(db.Integer, nullable=False, default=1)
    remarks = db.Column(db.Text)

    # populated after quotation
    unit_price = db.Column(db.Float)
    total_price = db.Column(db.Float)

    inquiry = db.relationship('Inquiry', back_populates='parts')

    def to_dict(self):
        return {
            'id': self.id,
            'partRef': self.part_ref,
            'material': self.material,
            'thickness': self.thickness,
            'grade': self.grade,
            'quantity': self.quantity,
            'remarks': self.remarks,
            'unitPrice': self.unit_price,
            'totalPrice': self.total_price,
        }
