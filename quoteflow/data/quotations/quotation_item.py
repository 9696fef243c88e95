from quoteflow import db


class QuotationItem(db.Model):
    __tablename__ = 'quotation_items'

    id = db.Column(db.Integer, primary_key=True)
    quotation_id = db.Column(db.Integer, db.ForeignKey('quotations.id'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    part_ref = db.Column(db.String(120))
    material = db.Column(db.String(120))
    thickness = db.Column(db.String(40))
    grade = db.Column(db.String(60))
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Float, nullable=False, default=0.0)
    total_price = db.Column(db.Float, nullable=False, default=0.0)
    remark = db.Column(db.Text)

    quotation = db.relationship('Quotation', back_populates='items')

    def to_dict(self):
        return {
            'id': self.id,
            'partRef': self.part_ref,
            'material': self.material,
            'thickness': self.thickness,
            'grade': self.grade,
            'quantity': self.quantity,
            'unitPrice': self.unit_price,
            'totalPrice': self.total_price,
            'remark': self.remark,
        }
