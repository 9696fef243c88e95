"""
Pytest configuration and fixtures
"""
import os

# before the logger singleton is first built
os.environ.setdefault('LOG_TO_FILE', 'False')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from dataclasses import dataclass

import pytest

from quoteflow import create_app
from quoteflow import db as _db
from quoteflow.data.core.user import User
from quoteflow.data.inquiries import Inquiry, InquiryPart
from quoteflow.data.orders import Order, OrderPayment
from quoteflow.data.quotations import Quotation, QuotationItem
from quoteflow.integrations.mailer import EmailNotifier
from quoteflow.integrations.sms import SmsNotifier

PASSWORD = 'Corr3ct-Horse-Battery'


@dataclass(frozen=True)
class Account:
    id: int
    username: str
    role: str


class RecordingEmailNotifier(EmailNotifier):
    def __init__(self):
        self.sent = []

    def send(self, to, subject, html_body, attachments=None):
        self.sent.append({
            'to': [to] if isinstance(to, str) else list(to),
            'subject': subject,
            'body': html_body,
            'attachments': [a.filename for a in attachments or []],
        })

    def subjects(self):
        return [message['subject'] for message in self.sent]


class RecordingSmsNotifier(SmsNotifier):
    def __init__(self):
        self.sent = []

    def send(self, phone, message):
        self.sent.append((phone, message))


@pytest.fixture
def app(tmp_path):
    """Application on an in-memory database with side effects run inline"""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'NOTIFICATIONS_RUN_INLINE': True,
        'ENABLE_HTTPS': False,
        'FORCE_HTTPS_REDIRECT': False,
        'SESSION_COOKIE_SECURE': False,
        'REMEMBER_COOKIE_SECURE': False,
        'WTF_CSRF_ENABLED': False,
        'RATELIMIT_ENABLED': False,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'BACKOFFICE_EMAILS': ['sales@example.com'],
    })
    integrations = app.extensions['quoteflow.integrations']
    integrations.email = RecordingEmailNotifier()
    integrations.sms = RecordingSmsNotifier()

    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Push an application context for tests that call the business layer directly"""
    with app.app_context():
        yield app


@pytest.fixture
def outbox(app):
    return app.extensions['quoteflow.integrations'].email


@pytest.fixture
def sms_outbox(app):
    return app.extensions['quoteflow.integrations'].sms


def create_user(username, role, **fields) -> Account:
    user = User(username=username, email=f"{username}@example.com", role=role, **fields)
    user.set_password(PASSWORD)
    _db.session.add(user)
    _db.session.commit()
    return Account(user.id, user.username, user.role)


@pytest.fixture
def users(app):
    """One account per role plus a second customer"""
    with app.app_context():
        return {
            'customer': create_user('acme', 'customer', first_name='Ada', last_name='Buyer',
                                    company_name='Acme Fabrication', phone_number='+15550100'),
            'other_customer': create_user('globex', 'customer', company_name='Globex'),
            'admin': create_user('admin', 'admin'),
            'backoffice': create_user('sales', 'backoffice'),
            'subadmin': create_user('ops', 'subadmin'),
        }


def login(client, account: Account):
    response = client.post('/auth/login', json={'username': account.username, 'password': PASSWORD})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def client(app):
    """Create Flask test client"""
    return app.test_client()


@pytest.fixture
def login_as(app):
    """Return a function that gives a fresh client logged in as an account"""
    return lambda account: login(app.test_client(), account)


@pytest.fixture
def customer_client(app, users):
    return login(app.test_client(), users['customer'])


@pytest.fixture
def admin_client(app, users):
    return login(app.test_client(), users['admin'])


@pytest.fixture
def make_inquiry():
    """Build a committed inquiry; requires an active app context"""
    def _make(customer_id, quantities=(10,), status='pending', number=None):
        inquiry = Inquiry(
            inquiry_number=number or f"INQ-T{Inquiry.query.count() + 1:04d}",
            customer_id=customer_id,
            status=status,
        )
        inquiry.delivery_address = {'street': '1 Mill Rd', 'city': 'Leeds', 'country': 'UK'}
        inquiry.parts = [
            InquiryPart(position=i, part_ref=f"P{i + 1}", material='Steel', thickness='2mm', quantity=q)
            for i, q in enumerate(quantities)
        ]
        _db.session.add(inquiry)
        _db.session.commit()
        return inquiry
    return _make


@pytest.fixture
def make_quotation(make_inquiry):
    """Build a committed quotation (and its inquiry); requires an active app context"""
    def _make(customer_id, total=500.0, status='accepted', items=None, quantities=(10,)):
        inquiry = make_inquiry(customer_id, quantities, status='quoted')
        quotation = Quotation(
            quotation_number=f"QTN-T{Quotation.query.count() + 1:04d}",
            inquiry_id=inquiry.id,
            customer_id=customer_id,
            customer_name='Ada Buyer',
            customer_email='acme@example.com',
            total_amount=total,
            status=status,
        )
        quotation.items = [
            QuotationItem(position=i, part_ref=item[0], material='Steel', thickness='2mm',
                          quantity=item[1], unit_price=item[2], total_price=item[1] * item[2])
            for i, item in enumerate(items or [])
        ]
        _db.session.add(quotation)
        _db.session.commit()
        inquiry.quotation_id = quotation.id
        _db.session.commit()
        return quotation
    return _make


@pytest.fixture
def make_order(make_quotation):
    """
    Build a committed order sitting in ``status`` without walking the
    lifecycle; requires an active app context
    """
    def _make(customer_id, status='pending', payment_status='pending', total=500.0):
        quotation = make_quotation(customer_id, total=total, status='order_created')
        order = Order(
            order_number=f"ORD-T{Order.query.count() + 1:04d}",
            quotation_id=quotation.id,
            inquiry_id=quotation.inquiry_id,
            customer_id=customer_id,
            total_amount=total,
            status=status,
        )
        order.payment = OrderPayment(method='pending', status=payment_status, amount=total)
        _db.session.add(order)
        _db.session.commit()
        return order
    return _make
