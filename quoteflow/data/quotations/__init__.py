from quoteflow.data.quotations.quotation import Quotation
from quoteflow.data.quotations.quotation_item import QuotationItem

__all__ = ['Quotation', 'QuotationItem']
