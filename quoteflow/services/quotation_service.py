"""
Quotation Service
Read-side queries for the quotation lists.
"""

from typing import Optional, Tuple
from flask import Request
from flask_sqlalchemy.pagination import Pagination
from quoteflow.data.quotations import Quotation
from quoteflow.services.pagination import page_args


class QuotationService:

    @staticmethod
    def build_filtered_query(
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        inquiry_id: Optional[int] = None,
        search: Optional[str] = None,
    ):
        query = Quotation.query

        if status:
            query = query.filter(Quotation.status == status)

        if customer_id:
            query = query.filter(Quotation.customer_id == customer_id)

        if inquiry_id:
            query = query.filter(Quotation.inquiry_id == inquiry_id)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                Quotation.quotation_number.ilike(pattern)
                | Quotation.customer_name.ilike(pattern)
                | Quotation.customer_company.ilike(pattern)
            )

        return query.order_by(Quotation.created_at.desc(), Quotation.id.desc())

    @staticmethod
    def get_list_data(request: Request, customer_id: Optional[int] = None) -> Tuple[Pagination, dict]:
        page, per_page = page_args(request)
        filters = {
            'status': request.args.get('status'),
            'inquiry_id': request.args.get('inquiryId', type=int),
            'search': request.args.get('search'),
        }
        query = QuotationService.build_filtered_query(customer_id=customer_id, **filters)
        return query.paginate(page=page, per_page=per_page, error_out=False), filters
