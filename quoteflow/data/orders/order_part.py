from quoteflow import db


class OrderPart(db.Model):
    __tablename__ = 'order_parts'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    part_name = db.Column(db.String(120))
    part_ref = db.Column(db.String(120))
    material = db.Column(db.String(120))
    thickness = db.Column(db.String(40))
    quantity = db.Column(db.Integer, nullable=False, default=0)
    remarks = db.Column(db.Text)
    unit_price = db.Column(db.Float, nullable=False, default=0.0)
    total_price = db.Column(db.Float, nullable=False, default=0.0)

    order = db.relationship('Order', back_populates='parts')

    def to_dict(self):
        return {
            'partName': self.part_name,
            'partRef': self.part_ref,
            'material': self.material,
            'thickness': self.thickness,
            'quantity': self.quantity,
            'remarks': self.remarks,
            'unitPrice': self.unit_price,
            'totalPrice': self.total_price,
        }
