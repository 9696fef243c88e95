from quoteflow.business.quotations.quotation_context import QuotationContext
from quoteflow.business.quotations.quotation_factory import QuotationFactory

__all__ = ['QuotationContext', 'QuotationFactory']
