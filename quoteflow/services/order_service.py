"""
Order Service
Read-side queries behind the order list endpoints.
"""

from typing import Dict, Optional, Tuple
from datetime import datetime
from flask import Request
from flask_sqlalchemy.pagination import Pagination
from sqlalchemy import func
from quoteflow import db
from quoteflow.data.core.user import User
from quoteflow.data.orders import Order, OrderPayment
from quoteflow.services.pagination import date_arg, page_args


class OrderService:
    """
    Service for order list data.

    Provides methods for:
    - Building filtered order queries
    - Paginating order lists for customers and back office
    """

    @staticmethod
    def build_filtered_query(
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ):
        """
        Build a filtered order query, newest first.

        Args:
            status: Filter by order status
            customer_id: Restrict to one customer
            payment_status: Filter by payment status
            search: Substring of the order number or customer name/company
            date_from: Created on or after
            date_to: Created on or before
        """
        query = Order.query

        if status:
            query = query.filter(Order.status == status)

        if customer_id:
            query = query.filter(Order.customer_id == customer_id)

        if payment_status:
            query = query.join(OrderPayment, OrderPayment.order_id == Order.id).filter(
                OrderPayment.status == payment_status
            )

        if search:
            pattern = f"%{search}%"
            query = query.join(User, User.id == Order.customer_id).filter(
                Order.order_number.ilike(pattern)
                | User.company_name.ilike(pattern)
                | User.first_name.ilike(pattern)
                | User.last_name.ilike(pattern)
            )

        if date_from:
            query = query.filter(Order.created_at >= date_from)

        if date_to:
            query = query.filter(Order.created_at <= date_to)

        return query.order_by(Order.created_at.desc(), Order.id.desc())

    @staticmethod
    def get_list_data(request: Request, customer_id: Optional[int] = None) -> Tuple[Pagination, Dict]:
        """
        Paginated orders with the filters from the query string applied.

        Returns:
            Tuple of (pagination object, applied filters)
        """
        page, per_page = page_args(request)
        filters = {
            'status': request.args.get('status'),
            'payment_status': request.args.get('paymentStatus'),
            'search': request.args.get('search'),
            'date_from': date_arg(request, 'dateFrom'),
            'date_to': date_arg(request, 'dateTo'),
        }
        query = OrderService.build_filtered_query(customer_id=customer_id, **filters)
        return query.paginate(page=page, per_page=per_page, error_out=False), filters

    @staticmethod
    def status_counts(customer_id: Optional[int] = None) -> Dict[str, int]:
        query = db.session.query(Order.status, func.count(Order.id)).group_by(Order.status)
        if customer_id:
            query = query.filter(Order.customer_id == customer_id)
        return {status: count for status, count in query.all()}
