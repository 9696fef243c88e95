import pytest

from quoteflow.business.notifications.notification_store import NotificationStore
from quoteflow.errors import NotFound, ValidationError


def test_create_and_list(app_ctx, users):
    customer = users['customer'].id
    NotificationStore.create(customer, 'Quotation Created', 'QTN-0501 is ready', 'info', ('quotation', 5),
                             {'quotationNumber': 'QTN-0501'})
    NotificationStore.create(customer, 'Order Delivered', 'ORD-0801 delivered', 'success')
    NotificationStore.create(users['other_customer'].id, 'Not yours', 'Hidden')

    notifications = NotificationStore.list_for_user(customer)

    assert [n.title for n in notifications] == ['Order Delivered', 'Quotation Created'], "Newest first"
    quotation_notice = notifications[1].to_dict()
    assert quotation_notice['relatedEntity'] == {'type': 'quotation', 'entityId': 5}
    assert quotation_notice['metadata'] == {'quotationNumber': 'QTN-0501'}
    assert quotation_notice['isRead'] is False
    assert notifications[0].to_dict()['relatedEntity'] is None


@pytest.mark.parametrize('title,message,type_,related', [
    ('', 'body', 'info', None),
    ('Title', '', 'info', None),
    ('Title', 'body', 'urgent', None),
    ('Title', 'body', 'info', ('invoice', 1)),
])
def test_invalid_notifications(app_ctx, users, title, message, type_, related):
    with pytest.raises(ValidationError):
        NotificationStore.create(users['customer'].id, title, message, type_, related)


def test_limit_and_unread_filter(app_ctx, users):
    customer = users['customer'].id
    created = [NotificationStore.create(customer, f'Notice {n}', 'body') for n in range(5)]
    NotificationStore.mark_read(created[4].id, customer)

    assert len(NotificationStore.list_for_user(customer, limit=2)) == 2
    unread = NotificationStore.list_for_user(customer, unread_only=True)
    assert [n.title for n in unread] == ['Notice 3', 'Notice 2', 'Notice 1', 'Notice 0']


def test_mark_read_requires_ownership(app_ctx, users):
    notification = NotificationStore.create(users['customer'].id, 'Mine', 'body')

    with pytest.raises(NotFound):
        NotificationStore.mark_read(notification.id, users['other_customer'].id)
    assert NotificationStore.unread_count(users['customer'].id) == 1

    read = NotificationStore.mark_read(notification.id, users['customer'].id)
    assert read.is_read
    assert read.read_at is not None
    first_read_at = read.read_at

    again = NotificationStore.mark_read(notification.id, users['customer'].id)
    assert again.read_at == first_read_at, "Marking twice keeps the first read time"


def test_mark_all_read_only_touches_own_records(app_ctx, users):
    customer, other = users['customer'].id, users['other_customer'].id
    for n in range(3):
        NotificationStore.create(customer, f'Notice {n}', 'body')
    NotificationStore.create(other, 'Other', 'body')

    assert NotificationStore.mark_all_read(customer) == 3
    assert NotificationStore.unread_count(customer) == 0
    assert NotificationStore.unread_count(other) == 1
    assert NotificationStore.mark_all_read(customer) == 0


def test_create_for_users(app_ctx, users):
    count = NotificationStore.create_for_users(
        [users['admin'].id, users['backoffice'].id], 'New Inquiry Received', 'INQ-1201', 'info', ('inquiry', 1)
    )
    assert count == 2
    assert NotificationStore.unread_count(users['admin'].id) == 1
    assert NotificationStore.unread_count(users['backoffice'].id) == 1


@pytest.mark.parametrize('limit,expected', [(-1, 1), (-500, 1), (0, 3), (None, 3), (2, 2)])
def test_limit_is_never_unbounded(app_ctx, users, limit, expected):
    customer = users['customer'].id
    for n in range(3):
        NotificationStore.create(customer, f'Notice {n}', 'body')

    assert len(NotificationStore.list_for_user(customer, limit)) == expected


def test_limit_is_capped(app_ctx, users, monkeypatch):
    monkeypatch.setattr(NotificationStore, 'MAX_LIMIT', 2)
    customer = users['customer'].id
    for n in range(4):
        NotificationStore.create(customer, f'Notice {n}', 'body')

    assert len(NotificationStore.list_for_user(customer, 1000)) == 2
