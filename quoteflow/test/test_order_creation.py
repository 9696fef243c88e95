"""
Order creation from accepted quotations
"""
from datetime import datetime

import pytest
from sqlalchemy import update

from quoteflow import db
from quoteflow.business.orders.order_factory import OrderFactory
from quoteflow.data.core.sequence_generator import SequenceGenerator
from quoteflow.data.orders import Order
from quoteflow.data.quotations import Quotation
from quoteflow.errors import AmountMismatch, ConcurrencyConflict, InvalidTransition, NotFound, ValidationError

YEAR = datetime.utcnow().year


def test_cod_order_is_confirmed_immediately(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=500.0)

    order = OrderFactory().create_from_quotation(
        quotation.id, amount=500, payment_method='cod', actor_id=users['customer'].id
    )

    assert order.order_number == f'ORD-0801-{YEAR}'
    assert order.status == 'confirmed'
    assert order.confirmed_at is not None
    assert order.payment.method == 'cod'
    assert order.payment.status == 'completed'
    assert [entry.status for entry in order.timeline] == ['pending', 'confirmed']

    quotation = db.session.get(Quotation, quotation.id)
    assert quotation.status == 'order_created'
    assert quotation.order_created_at is not None
    assert quotation.order_id == order.id


def test_online_order_waits_for_payment(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=250.0)

    order = OrderFactory().create_from_quotation(quotation.id, amount='250.00', payment_method='online')

    assert order.status == 'pending'
    assert order.confirmed_at is None
    assert order.payment.method == 'pending'
    assert order.payment.status == 'pending'
    assert order.payment.amount == 250.0
    assert [entry.status for entry in order.timeline] == ['pending']


def test_amount_must_match_quotation_total(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=500.0)

    with pytest.raises(AmountMismatch) as excinfo:
        OrderFactory().create_from_quotation(quotation.id, amount=499.0, payment_method='cod')

    assert excinfo.value.details == {'expected': 500.0, 'received': 499.0}
    assert Order.query.count() == 0
    assert db.session.get(Quotation, quotation.id).status == 'accepted'


def test_amount_within_a_cent_is_accepted(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=500.0)
    order = OrderFactory().create_from_quotation(quotation.id, amount=500.005, payment_method='direct')
    assert order.total_amount == 500.0
    assert order.payment.method == 'direct'


def test_second_order_for_a_quotation_conflicts(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id)
    factory = OrderFactory()
    factory.create_from_quotation(quotation.id, amount=500, payment_method='cod')

    with pytest.raises(ConcurrencyConflict):
        factory.create_from_quotation(quotation.id, amount=500, payment_method='cod')

    assert Order.query.count() == 1


def test_lost_race_on_quotation_claim(app_ctx, users, make_quotation):
    """Another request flipped the quotation after this one read it"""
    quotation = make_quotation(users['customer'].id)
    assert quotation.status == 'accepted'
    db.session.execute(
        update(Quotation)
        .where(Quotation.id == quotation.id)
        .values(status='order_created')
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConcurrencyConflict):
        OrderFactory().create_from_quotation(quotation.id, amount=500, payment_method='cod')

    assert Order.query.count() == 0


@pytest.mark.parametrize('status', ['draft', 'sent', 'rejected'])
def test_quotation_must_be_accepted(app_ctx, users, make_quotation, status):
    quotation = make_quotation(users['customer'].id, status=status)
    with pytest.raises(InvalidTransition):
        OrderFactory().create_from_quotation(quotation.id, amount=500, payment_method='cod')


def test_unknown_payment_method(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id)
    with pytest.raises(ValidationError):
        OrderFactory().create_from_quotation(quotation.id, amount=500, payment_method='barter')


def test_missing_quotation(app_ctx):
    with pytest.raises(NotFound):
        OrderFactory().create_from_quotation(9999, amount=1, payment_method='cod')


def test_parts_copied_from_quotation_items(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=70.0, items=[('BRKT-1', 2, 10.0), ('PLATE-7', 5, 10.0)])

    order = OrderFactory().create_from_quotation(quotation.id, amount=70, payment_method='cod')

    assert [(p.part_ref, p.quantity, p.unit_price, p.total_price) for p in order.parts] == [
        ('BRKT-1', 2, 10.0, 20.0),
        ('PLATE-7', 5, 10.0, 50.0),
    ]


def test_parts_priced_from_inquiry_when_quotation_has_no_items(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=100.0, quantities=(2, 3, 5))

    order = OrderFactory().create_from_quotation(quotation.id, amount=100, payment_method='cod')

    assert [p.total_price for p in order.parts] == [20.0, 30.0, 50.0]
    assert [p.unit_price for p in order.parts] == [10.0, 10.0, 10.0]
    assert [p.part_ref for p in order.parts] == ['P1', 'P2', 'P3']


def test_explicit_parts_take_priority(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=100.0, items=[('IGNORED', 1, 100.0)])

    order = OrderFactory().create_from_quotation(
        quotation.id, amount=100, payment_method='cod',
        parts=[{'partName': 'Gusset', 'quantity': 4, 'unitPrice': 25}],
    )

    assert len(order.parts) == 1
    part = order.parts[0]
    assert (part.part_name, part.part_ref, part.total_price) == ('Gusset', 'Gusset', 100.0)
    assert part.material == 'N/A'


def test_delivery_address_defaults_to_inquiry(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id)
    order = OrderFactory().create_from_quotation(quotation.id, amount=500, payment_method='cod')
    assert order.delivery_address['city'] == 'Leeds'

    other = make_quotation(users['customer'].id)
    order = OrderFactory().create_from_quotation(
        other.id, amount=500, payment_method='cod', delivery_address={'city': 'York'}
    )
    assert order.delivery_address['city'] == 'York'


@pytest.mark.parametrize('parts,field', [
    ([{'material': 'Steel', 'quantity': 'ten'}], 'parts[0].quantity'),
    ([{'quantity': 2, 'unitPrice': 'cheap'}], 'parts[0].unitPrice'),
    ([{'quantity': 0}], 'parts[0].quantity'),
    ([{'quantity': 1.5}], 'parts[0].quantity'),
    ([{'quantity': 1}, 'abc'], 'parts[1]'),
])
def test_malformed_parts_are_rejected_before_anything_is_written(app_ctx, users, make_quotation, parts, field):
    quotation = make_quotation(users['customer'].id, total=500.0)

    with pytest.raises(ValidationError) as excinfo:
        OrderFactory().create_from_quotation(quotation.id, amount=500, payment_method='cod', parts=parts)

    assert field in excinfo.value.details
    assert Order.query.count() == 0
    assert db.session.get(Quotation, quotation.id).status == 'accepted'
    assert SequenceGenerator.preview_next_id('order') == f'ORD-0801-{YEAR}', "No order number is consumed"


def test_parts_must_be_a_list(app_ctx, users, make_quotation):
    quotation = make_quotation(users['customer'].id, total=500.0)
    with pytest.raises(ValidationError):
        OrderFactory().create_from_quotation(quotation.id, amount=500, payment_method='cod', parts='P1')
    assert db.session.get(Quotation, quotation.id).status == 'accepted'
