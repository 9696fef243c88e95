from quoteflow.business.inquiries.inquiry_context import InquiryContext
from quoteflow.business.inquiries.inquiry_factory import InquiryFactory, UploadedFile

__all__ = ['InquiryContext', 'InquiryFactory', 'UploadedFile']
