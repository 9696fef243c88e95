"""
Quote-to-order workflows over HTTP, with side effects run inline
"""
from datetime import datetime

import pytest

from quoteflow.integrations.payments import PaymentGateway

YEAR = datetime.utcnow().year


class FakeGateway(PaymentGateway):
    """Accepts the signature 'valid-signature' and records refunds"""

    def __init__(self):
        self.refunds = []

    def create_order(self, amount, currency, receipt):
        return {'orderId': f'order_{receipt}', 'amount': amount, 'currency': currency, 'receipt': receipt,
                'keyId': 'rzp_test'}

    def verify_signature(self, gateway_order_id, payment_id, signature):
        return signature == 'valid-signature'

    def fetch_payment_details(self, payment_id):
        return {'id': payment_id, 'amount': 500.0, 'currency': 'USD', 'status': 'captured', 'method': 'card'}

    def refund(self, payment_id, amount=None, reason=None):
        self.refunds.append((payment_id, amount, reason))
        return {'id': f'rfnd_{payment_id}', 'amount': amount, 'status': 'processed', 'paymentId': payment_id}


@pytest.fixture
def gateway(app):
    fake = FakeGateway()
    app.extensions['quoteflow.integrations'].payments = fake
    return fake


def submit_inquiry(customer_client):
    response = customer_client.post('/inquiries', json={
        'parts': [{'material': 'Steel', 'thickness': '2mm', 'quantity': 10}],
        'deliveryAddress': {'street': '1 Mill Rd', 'city': 'Leeds', 'country': 'UK'},
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['inquiry']


def accepted_quotation(admin_client, customer_client, total=500):
    inquiry = submit_inquiry(customer_client)
    response = admin_client.post('/quotations', json={'inquiryId': inquiry['id'], 'totalAmount': total})
    assert response.status_code == 201, response.get_json()
    quotation = response.get_json()['quotation']

    assert admin_client.post(f"/quotations/{quotation['id']}/send").status_code == 200
    response = customer_client.post(f"/quotations/{quotation['id']}/response", json={'action': 'accept'})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['quotation']


def place_order(customer_client, quotation, method='cod'):
    response = customer_client.post('/orders', json={
        'quotationId': quotation['id'],
        'amount': quotation['totalAmount'],
        'paymentMethod': method,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['order']


def notification_titles(client):
    return [n['title'] for n in client.get('/notifications').get_json()['notifications']]


def test_inquiry_to_cod_order(customer_client, admin_client, outbox, sms_outbox):
    inquiry = submit_inquiry(customer_client)
    assert inquiry['inquiryNumber'] == f'INQ-1201-{YEAR}'
    assert inquiry['status'] == 'pending'
    assert f"New Inquiry INQ-1201-{YEAR}" in outbox.subjects()
    assert f"Inquiry INQ-1201-{YEAR} received" in outbox.subjects()
    back_office_mail = next(m for m in outbox.sent if m['subject'].startswith('New Inquiry'))
    assert back_office_mail['to'] == ['sales@example.com']
    assert back_office_mail['attachments'] == [f'INQ-1201-{YEAR}_parts.csv']
    assert 'New Inquiry Received' in notification_titles(admin_client)

    response = admin_client.post('/quotations', json={'inquiryId': inquiry['id'], 'totalAmount': 500})
    assert response.status_code == 201
    quotation = response.get_json()['quotation']
    assert quotation['status'] == 'draft'
    assert quotation['quotationNumber'] == f'QTN-0501-{YEAR}'
    assert quotation['customerInfo']['company'] == 'Acme Fabrication'
    assert customer_client.get(f"/inquiries/{inquiry['id']}").get_json()['inquiry']['status'] == 'quoted'
    assert 'Quotation Created' in notification_titles(customer_client)

    response = admin_client.post(f"/quotations/{quotation['id']}/send")
    assert response.get_json()['status'] == 'sent'
    assert f"Quotation QTN-0501-{YEAR}" in outbox.subjects()
    assert sms_outbox.sent and sms_outbox.sent[-1][0] == '+15550100'

    response = customer_client.post(f"/quotations/{quotation['id']}/response", json={'action': 'accept'})
    assert response.get_json()['quotation']['status'] == 'accepted'
    assert 'Quotation Accepted' in notification_titles(admin_client)

    order = place_order(customer_client, response.get_json()['quotation'])
    assert order['orderNumber'] == f'ORD-0801-{YEAR}'
    assert order['status'] == 'confirmed'
    assert order['totalAmount'] == 500
    assert order['payment']['status'] == 'completed'
    assert order['payment']['method'] == 'cod'
    assert [entry['status'] for entry in order['timeline']] == ['pending', 'confirmed']
    assert order['parts'][0]['totalPrice'] == 500
    assert 'Order Created' in notification_titles(customer_client)
    assert 'Payment Received' in notification_titles(admin_client)

    quotation = customer_client.get(f"/quotations/{quotation['id']}").get_json()['quotation']
    assert quotation['status'] == 'order_created'
    assert quotation['orderId'] == order['id']


def test_status_walk_keeps_payment_completed(customer_client, admin_client, outbox):
    quotation = accepted_quotation(admin_client, customer_client)
    order = place_order(customer_client, quotation, method='online')
    assert order['status'] == 'pending'

    for status in ('confirmed', 'in_production', 'ready_for_dispatch', 'dispatched', 'delivered'):
        response = admin_client.put(f"/orders/{order['id']}/status", json={'status': status})
        assert response.status_code == 200, response.get_json()
        updated = response.get_json()['order']
        assert updated['status'] == status
        assert updated['payment']['status'] == 'completed'

    assert updated['dispatch']['dispatchedAt'] is not None
    assert updated['dispatch']['actualDelivery'] is not None
    assert updated['production']['actualCompletion'] is not None
    assert [entry['status'] for entry in updated['timeline']] == [
        'pending', 'confirmed', 'in_production', 'ready_for_dispatch', 'dispatched', 'delivered'
    ]
    assert f"Order {order['orderNumber']}: Delivered" in outbox.subjects()
    assert 'Order Dispatched' in notification_titles(customer_client), \
        "A dispatch without tracking details still tells the customer"


def test_same_status_update_is_quiet(customer_client, admin_client, outbox):
    order = place_order(customer_client, accepted_quotation(admin_client, customer_client))
    sent_before = len(outbox.sent)

    response = admin_client.put(f"/orders/{order['id']}/status", json={'status': 'confirmed'})

    assert response.status_code == 200
    assert response.get_json()['message'] == 'Order status unchanged'
    assert len(response.get_json()['order']['timeline']) == 2
    assert len(outbox.sent) == sent_before


def test_dispatch_desk_flow(client, customer_client, admin_client, outbox, sms_outbox):
    order = place_order(customer_client, accepted_quotation(admin_client, customer_client))

    response = admin_client.put(f"/orders/{order['id']}/delivery-time",
                                json={'estimatedCompletion': '2026-11-30T00:00:00Z'})
    assert response.status_code == 200
    assert response.get_json()['order']['status'] == 'in_production'
    assert response.get_json()['order']['production']['estimatedCompletion'] == '2026-11-30T00:00:00'
    assert 'Delivery Time Updated' in notification_titles(customer_client)

    admin_client.put(f"/orders/{order['id']}/status", json={'status': 'ready_for_dispatch'})
    ready = admin_client.get('/dispatch/ready').get_json()
    assert [o['id'] for o in ready['orders']] == [order['id']]

    response = admin_client.post(f"/dispatch/{order['id']}", json={'courier': 'DHL'})
    assert response.status_code == 400, "Tracking number is required"

    response = admin_client.post(f"/dispatch/{order['id']}", json={
        'courier': 'DHL', 'trackingNumber': 'JD0146', 'estimatedDelivery': '2026-12-03',
    })
    assert response.status_code == 201
    dispatched = response.get_json()['order']
    assert dispatched['status'] == 'dispatched'
    assert dispatched['dispatch']['trackingNumber'] == 'JD0146'
    assert f"Order {order['orderNumber']} dispatched" in outbox.subjects()
    assert any('JD0146' in text for _, text in sms_outbox.sent)

    tracking = client.get(f"/dispatch/{order['id']}/tracking")
    assert tracking.status_code == 200, "Tracking is public"
    assert tracking.get_json()['tracking']['dispatch']['courier'] == 'DHL'

    response = admin_client.post(f"/dispatch/{order['id']}/delivered", json={'actualDelivery': '2026-12-02T10:15:00'})
    assert response.get_json()['order']['status'] == 'delivered'
    assert response.get_json()['order']['dispatch']['actualDelivery'] == '2026-12-02T10:15:00'
    assert 'Order Delivered' in notification_titles(customer_client)


def test_online_payment(customer_client, admin_client, gateway):
    quotation = accepted_quotation(admin_client, customer_client)
    order = place_order(customer_client, quotation, method='online')
    assert 'Order Created' not in notification_titles(customer_client), "Online orders wait for the payment"

    response = customer_client.post('/payments/create-order', json={'quotationId': quotation['id']})
    assert response.status_code == 200
    checkout = response.get_json()['checkout']
    assert checkout['orderId'] == f"order_{order['orderNumber']}"

    callback = {
        'orderId': order['id'],
        'razorpayOrderId': checkout['orderId'],
        'razorpayPaymentId': 'pay_001',
        'razorpaySignature': 'forged',
    }
    response = customer_client.post('/payments/verify', json=callback)
    assert response.status_code == 400
    assert customer_client.get(f"/orders/{order['id']}").get_json()['order']['status'] == 'pending'

    response = customer_client.post('/payments/verify', json=dict(callback, razorpaySignature='valid-signature'))
    assert response.status_code == 200
    paid = response.get_json()['order']
    assert paid['status'] == 'confirmed'
    assert paid['payment']['method'] == 'razorpay'
    assert paid['payment']['transactionId'] == 'pay_001'
    assert paid['payment']['status'] == 'completed'
    assert notification_titles(customer_client).count('Order Confirmed') == 1

    # gateway retries the callback
    response = customer_client.post('/payments/verify', json=dict(callback, razorpaySignature='valid-signature'))
    assert response.status_code == 200
    assert notification_titles(customer_client).count('Order Confirmed') == 1

    response = admin_client.post(f"/orders/{order['id']}/refund", json={'reason': 'Customer changed design'})
    assert response.status_code == 200
    refunded = response.get_json()['order']
    assert refunded['status'] == 'cancelled'
    assert refunded['payment']['status'] == 'refunded'
    assert refunded['payment']['refundId'] == 'rfnd_pay_001'
    assert gateway.refunds == [('pay_001', None, 'Customer changed design')]


def test_rejected_quotation(customer_client, admin_client):
    inquiry = submit_inquiry(customer_client)
    quotation = admin_client.post('/quotations', json={'inquiryId': inquiry['id'], 'totalAmount': 80}) \
        .get_json()['quotation']
    admin_client.post(f"/quotations/{quotation['id']}/send")

    response = customer_client.post(f"/quotations/{quotation['id']}/response", json={'action': 'reject'})
    assert response.status_code == 400

    response = customer_client.post(f"/quotations/{quotation['id']}/response",
                                    json={'action': 'reject', 'rejectionReason': 'Too expensive'})
    assert response.get_json()['quotation']['status'] == 'rejected'
    assert customer_client.get(f"/inquiries/{inquiry['id']}").get_json()['inquiry']['status'] == 'rejected'
    assert 'Quotation Rejected' in notification_titles(admin_client)

    response = customer_client.post('/orders', json={'quotationId': quotation['id'], 'amount': 80,
                                                     'paymentMethod': 'cod'})
    assert response.status_code == 400


def test_error_responses(client, customer_client, admin_client, users, login_as):
    response = client.get('/orders')
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'message': 'Authentication required'}

    response = customer_client.get('/orders')
    assert response.status_code == 403
    assert response.get_json()['success'] is False

    assert admin_client.get('/orders/999').status_code == 404

    quotation = accepted_quotation(admin_client, customer_client)
    response = customer_client.post('/orders', json={'quotationId': quotation['id'], 'amount': 499,
                                                     'paymentMethod': 'cod'})
    assert response.status_code == 400
    assert response.get_json()['errors'] == {'expected': 500.0, 'received': 499.0}

    order = place_order(customer_client, quotation)
    response = customer_client.post('/orders', json={'quotationId': quotation['id'], 'amount': 500,
                                                     'paymentMethod': 'cod'})
    assert response.status_code == 409

    response = admin_client.put(f"/orders/{order['id']}/status", json={'status': 'delivered'})
    assert response.status_code == 400
    assert response.get_json()['errors'] == {'from': 'confirmed', 'to': 'delivered'}

    other = login_as(users['other_customer'])
    assert other.get(f"/orders/{order['id']}").status_code == 403
    assert other.post('/orders', json={'quotationId': quotation['id'], 'amount': 500}).status_code == 403


def test_order_lists(customer_client, admin_client, users):
    first = place_order(customer_client, accepted_quotation(admin_client, customer_client))
    place_order(customer_client, accepted_quotation(admin_client, customer_client), method='online')

    listing = admin_client.get('/orders?status=confirmed').get_json()
    assert [o['id'] for o in listing['orders']] == [first['id']]
    assert listing['statusCounts']['confirmed'] == 1
    assert listing['statusCounts']['pending'] == 1

    mine = customer_client.get('/orders/customer?limit=1').get_json()
    assert len(mine['orders']) == 1
    assert mine['pagination']['totalItems'] == 2
    assert mine['pagination']['totalPages'] == 2

    by_customer = admin_client.get(f"/orders/customer/{users['customer'].id}").get_json()
    assert by_customer['pagination']['totalItems'] == 2


def test_notification_inbox(customer_client, admin_client, users):
    response = admin_client.post('/notifications', json={
        'role': 'customer',
        'title': 'Plant shutdown',
        'message': 'No dispatches on Friday',
        'type': 'warning',
    })
    assert response.status_code == 202
    assert response.get_json()['recipients'] == 2

    inbox = customer_client.get('/notifications').get_json()
    assert inbox['unreadCount'] == 1
    notice = inbox['notifications'][0]
    assert (notice['title'], notice['type']) == ('Plant shutdown', 'warning')

    assert admin_client.patch(f"/notifications/{notice['id']}/read").status_code == 404, \
        "Only the owner may mark a notification read"
    assert customer_client.patch(f"/notifications/{notice['id']}/read").get_json()['notification']['isRead']
    assert customer_client.get('/notifications/unread-count').get_json()['count'] == 0

    response = admin_client.post('/notifications', json={'userId': users['customer'].id, 'title': 'x',
                                                         'message': 'y', 'type': 'urgent'})
    assert response.status_code == 400
    assert customer_client.post('/notifications', json={'role': 'customer', 'title': 'x',
                                                         'message': 'y'}).status_code == 403


def test_nomenclature(admin_client, customer_client):
    settings = admin_client.get('/admin/nomenclature').get_json()['nomenclature']
    assert settings['order']['nextId'] == f'ORD-0801-{YEAR}'

    response = admin_client.put('/admin/nomenclature', json={
        'order': {'prefix': 'SO', 'startNumber': 5000, 'separator': '/', 'includeYearSuffix': False},
    })
    assert response.status_code == 200
    assert response.get_json()['nomenclature']['order']['nextId'] == 'SO/5001'

    order = place_order(customer_client, accepted_quotation(admin_client, customer_client))
    assert order['orderNumber'] == 'SO/5001'

    assert admin_client.put('/admin/nomenclature', json={'invoice': {'prefix': 'INV'}}).status_code == 400
    assert customer_client.get('/admin/nomenclature').status_code == 403


def test_realtime_poll(customer_client, admin_client):
    assert customer_client.get('/realtime/poll').get_json()['events'] == []

    accepted_quotation(admin_client, customer_client)

    events = customer_client.get('/realtime/poll').get_json()['events']
    assert [e['category'] for e in events] == ['quotation']
    assert events[0]['data']['quotationNumber'] == f'QTN-0501-{YEAR}'
    assert customer_client.get('/realtime/poll').get_json()['events'] == []


def test_register_and_session(client):
    response = client.post('/auth/register', json={'username': 'initech', 'email': 'ops@initech.example',
                                                   'password': 'short'})
    assert response.status_code == 400
    assert 'password' in response.get_json()['errors']

    response = client.post('/auth/register', json={'username': 'initech', 'email': 'ops@initech.example',
                                                   'password': 'long-enough-pw', 'role': 'admin'})
    assert response.status_code == 201
    assert response.get_json()['user']['role'] == 'customer'
    assert client.get('/auth/me').get_json()['user']['username'] == 'initech'

    assert client.post('/auth/logout').status_code == 200
    assert client.get('/auth/me').status_code == 401

    response = client.post('/auth/login', json={'username': 'initech', 'password': 'wrong-password'})
    assert response.status_code == 401


def test_malformed_request_bodies_are_client_errors(customer_client, admin_client, users):
    quotation = accepted_quotation(admin_client, customer_client)

    for parts in ([{'material': 'Steel', 'quantity': 'ten'}], ['abc']):
        response = customer_client.post('/orders', json={
            'quotationId': quotation['id'], 'amount': 500, 'paymentMethod': 'cod', 'parts': parts,
        })
        assert response.status_code == 400, response.get_json()
        assert response.get_json()['success'] is False

    assert customer_client.get('/orders/customer').get_json()['pagination']['totalItems'] == 0
    assert customer_client.get(f"/quotations/{quotation['id']}").get_json()['quotation']['status'] == 'accepted'

    response = customer_client.post('/orders', json={'quotationId': 'first', 'amount': 500})
    assert response.status_code == 400
    assert response.get_json()['errors'] == {'quotationId': 'first'}

    assert customer_client.post('/payments/create-order', json={'orderId': 'abc'}).status_code == 400
    assert admin_client.post('/quotations', json={'inquiryId': '1x', 'totalAmount': 10}).status_code == 400

    inquiry = submit_inquiry(customer_client)
    response = admin_client.post('/quotations', json={'inquiryId': inquiry['id'], 'items': ['P1']})
    assert response.status_code == 400
    assert response.get_json()['errors'] == {'items[0]': 'P1'}

    response = admin_client.post('/notifications', json={'userId': 'me', 'title': 'x', 'message': 'y'})
    assert response.status_code == 400


def test_notice_to_unknown_user_is_refused(admin_client, customer_client):
    response = admin_client.post('/notifications', json={'userId': 9999, 'title': 'Hello', 'message': 'Anyone?'})
    assert response.status_code == 404
    assert response.get_json()['message'] == 'User not found'


def test_notification_limit_is_bounded(customer_client, admin_client, users):
    for n in range(3):
        admin_client.post('/notifications', json={'userId': users['customer'].id, 'title': f'Notice {n}',
                                                  'message': 'body'})

    assert len(customer_client.get('/notifications?limit=-1').get_json()['notifications']) == 1
    assert len(customer_client.get('/notifications?limit=0').get_json()['notifications']) == 3
