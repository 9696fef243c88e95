"""
Dispatch Service
Presentation service for orders around the dispatch desk.
"""

from typing import Optional, Tuple
from datetime import datetime
from flask import Request
from flask_sqlalchemy.pagination import Pagination
from quoteflow.data.orders import Order, OrderDispatch
from quoteflow.services.pagination import date_arg, page_args


class DispatchService:
    """Queries for orders that are ready to ship or already shipped."""

    SHIPPED_STATUSES = ('dispatched', 'delivered')

    @staticmethod
    def ready_for_dispatch():
        return Order.query.filter(Order.status == 'ready_for_dispatch').order_by(Order.updated_at.asc()).all()

    @staticmethod
    def build_filtered_query(
        status: Optional[str] = None,
        courier: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ):
        """
        Shipped orders, most recently dispatched first.

        Args:
            status: dispatched or delivered; both when omitted
            courier: Filter by courier name
            date_from: Dispatched on or after
            date_to: Dispatched on or before
        """
        query = Order.query.join(OrderDispatch, OrderDispatch.order_id == Order.id)

        if status in DispatchService.SHIPPED_STATUSES:
            query = query.filter(Order.status == status)
        else:
            query = query.filter(Order.status.in_(DispatchService.SHIPPED_STATUSES))

        if courier:
            query = query.filter(OrderDispatch.courier.ilike(f"%{courier}%"))

        if date_from:
            query = query.filter(OrderDispatch.dispatched_at >= date_from)

        if date_to:
            query = query.filter(OrderDispatch.dispatched_at <= date_to)

        return query.order_by(OrderDispatch.dispatched_at.desc())

    @staticmethod
    def get_list_data(request: Request) -> Tuple[Pagination, dict]:
        page, per_page = page_args(request)
        filters = {
            'status': request.args.get('status'),
            'courier': request.args.get('courier'),
            'date_from': date_arg(request, 'dateFrom'),
            'date_to': date_arg(request, 'dateTo'),
        }
        query = DispatchService.build_filtered_query(**filters)
        return query.paginate(page=page, per_page=per_page, error_out=False), filters
