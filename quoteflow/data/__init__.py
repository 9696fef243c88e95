from quoteflow.data.core.user import User
from quoteflow.data.core.sequence_counter import SequenceCounter
from quoteflow.data.inquiries import Inquiry, InquiryPart, InquiryFile
from quoteflow.data.quotations import Quotation, QuotationItem
from quoteflow.data.orders import (
    Order,
    OrderPart,
    OrderPayment,
    OrderProduction,
    OrderDispatch,
    OrderTimelineEntry,
)
from quoteflow.data.notifications import Notification
