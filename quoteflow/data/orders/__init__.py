from quoteflow.data.orders.order import Order
from quoteflow.data.orders.order_part import OrderPart
from quoteflow.data.orders.order_payment import OrderPayment
from quoteflow.data.orders.order_production import OrderProduction
from quoteflow.data.orders.order_dispatch import OrderDispatch
from quoteflow.data.orders.order_timeline import OrderTimelineEntry

__all__ = ['Order', 'OrderPart', 'OrderPayment', 'OrderProduction', 'OrderDispatch', 'OrderTimelineEntry']
