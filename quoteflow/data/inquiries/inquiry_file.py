from datetime import datetime

from quoteflow import db
from quoteflow.data.core.user_created_base import isoformat


class InquiryFile(db.Model):
    """Metadata for an uploaded drawing; the bytes live in the file store."""
    __tablename__ = 'inquiry_files'

    id = db.Column(db.Integer, primary_key=True)
    inquiry_id = db.Column(db.Integer, db.ForeignKey('inquiries.id'), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    stored_name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.Integer, nullable=False, default=0)
    file_type = db.Column(db.String(20))
    locator = db.Column(db.String(500))
    external_url = db.Column(db.String(500))
    uploaded_at = db.Column(db.DateTime, default=datetime.utcnow)

    inquiry = db.relationship('Inquiry', back_populates='files')

    def to_dict(self):
        return {
            'id': self.id,
            'originalName': self.original_name,
            'fileName': self.stored_name,
            'fileSize': self.size,
            'fileType': self.file_type,
            'locator': self.locator,
            'externalUrl': self.external_url,
            'uploadedAt': isoformat(self.uploaded_at),
        }
