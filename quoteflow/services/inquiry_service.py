"""
Inquiry Service
Read-side queries for the inquiry lists.
"""

from typing import Optional, Tuple
from datetime import datetime
from flask import Request
from flask_sqlalchemy.pagination import Pagination
from quoteflow.data.core.user import User
from quoteflow.data.inquiries import Inquiry
from quoteflow.services.pagination import date_arg, page_args


class InquiryService:

    @staticmethod
    def build_filtered_query(
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ):
        query = Inquiry.query

        if status:
            query = query.filter(Inquiry.status == status)

        if customer_id:
            query = query.filter(Inquiry.customer_id == customer_id)

        if search:
            pattern = f"%{search}%"
            query = query.join(User, User.id == Inquiry.customer_id).filter(
                Inquiry.inquiry_number.ilike(pattern)
                | User.company_name.ilike(pattern)
                | User.email.ilike(pattern)
            )

        if date_from:
            query = query.filter(Inquiry.created_at >= date_from)

        if date_to:
            query = query.filter(Inquiry.created_at <= date_to)

        return query.order_by(Inquiry.created_at.desc(), Inquiry.id.desc())

    @staticmethod
    def get_list_data(request: Request, customer_id: Optional[int] = None) -> Tuple[Pagination, dict]:
        page, per_page = page_args(request)
        filters = {
            'status': request.args.get('status'),
            'search': request.args.get('search'),
            'date_from': date_arg(request, 'dateFrom'),
            'date_to': date_arg(request, 'dateTo'),
        }
        query = InquiryService.build_filtered_query(customer_id=customer_id, **filters)
        return query.paginate(page=page, per_page=per_page, error_out=False), filters
