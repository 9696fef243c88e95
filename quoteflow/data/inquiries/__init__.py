from quoteflow.data.inquiries.inquiry import Inquiry
from quoteflow.data.inquiries.inquiry_part import InquiryPart
from quoteflow.data.inquiries.inquiry_file import InquiryFile

__all__ = ['Inquiry', 'InquiryPart', 'InquiryFile']
