"""
Side-effect dispatch: isolation between tasks, timing relative to the
response and the registered event table.
"""
import logging

import pytest
from flask import jsonify

from quoteflow.business.notifications.dispatcher import SideEffectDispatcher
from quoteflow.business.notifications.tasks import EVENT_TASKS
from quoteflow.data.notifications import Notification
from quoteflow.errors import DependencyFailure


@pytest.fixture
def quoteflow_log(caplog):
    """The quoteflow logger does not propagate, so attach caplog to it directly"""
    logger = logging.getLogger("quoteflow")
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)


def test_failing_task_does_not_stop_the_others(app, quoteflow_log):
    calls = []

    def first(entity_id, context):
        calls.append(('first', entity_id))

    def broken(entity_id, context):
        raise DependencyFailure("SMTP connection refused")

    def last(entity_id, context):
        calls.append(('last', entity_id, context['note']))

    dispatcher = SideEffectDispatcher(app, run_inline=True, registry={
        'thing_happened': [('first', first), ('broken', broken), ('last', last)],
    })

    dispatcher.dispatch('thing_happened', 7, {'note': 'hello'})

    assert calls == [('first', 7), ('last', 7, 'hello')]
    failures = [r for r in quoteflow_log.records if r.levelno == logging.ERROR]
    assert len(failures) == 1
    assert 'thing_happened.broken' in failures[0].getMessage()
    assert 'SMTP connection refused' in failures[0].getMessage()


def test_unexpected_errors_are_contained(app):
    def crash(entity_id, context):
        raise KeyError('missing')

    dispatcher = SideEffectDispatcher(app, run_inline=True, registry={'boom': [('crash', crash)]})
    dispatcher.dispatch('boom', 1)


def test_unknown_event_is_ignored(app, quoteflow_log):
    dispatcher = SideEffectDispatcher(app, run_inline=True, registry={})
    dispatcher.dispatch('nobody_listens', 1)
    assert any('nobody_listens' in r.getMessage() for r in quoteflow_log.records)


def test_context_is_copied(app):
    seen = []
    dispatcher = SideEffectDispatcher(app, run_inline=True, registry={
        'evt': [('mutate', lambda i, c: c.update(changed=True)), ('observe', lambda i, c: seen.append(dict(c)))],
    })
    original = {'oldStatus': 'pending'}
    dispatcher.dispatch('evt', 1, original)
    assert original == {'oldStatus': 'pending'}
    assert seen == [{'oldStatus': 'pending', 'changed': True}]


def test_worker_pool_runs_every_task(app):
    calls = []
    dispatcher = SideEffectDispatcher(app, max_workers=2, run_inline=False, registry={
        'evt': [(f'task{n}', lambda i, c, n=n: calls.append(n)) for n in range(5)],
    })
    dispatcher.dispatch('evt', 1)
    dispatcher.shutdown(wait=True)
    assert sorted(calls) == [0, 1, 2, 3, 4]


def test_tasks_run_after_the_view_returns(app):
    calls = []

    def record(entity_id, context):
        calls.append(entity_id)

    def broken(entity_id, context):
        raise DependencyFailure("gateway down")

    dispatcher = SideEffectDispatcher(app, run_inline=True, registry={
        'evt': [('broken', broken), ('record', record)],
    })

    def view():
        dispatcher.dispatch('evt', 42)
        assert calls == [], "Nothing may run before the response is built"
        return jsonify({'success': True})

    app.add_url_rule('/after-response', 'after_response', view)

    response = app.test_client().get('/after-response')

    assert response.status_code == 200, "Side-effect failures never change the response"
    assert calls == [42]


def test_every_event_has_tasks():
    expected = {
        'inquiry_created', 'quotation_created', 'quotation_sent', 'quotation_responded',
        'order_created', 'payment_verified', 'order_status_changed', 'delivery_time_updated',
        'dispatch_recorded', 'dispatch_updated', 'delivery_confirmed', 'manual_notification',
    }
    assert set(EVENT_TASKS) == expected
    for event, tasks in EVENT_TASKS.items():
        assert tasks, event
        assert len({name for name, _ in tasks}) == len(tasks), f"Duplicate task names for {event}"


def test_email_outage_still_records_notifications(app_ctx, users, make_inquiry, outbox, monkeypatch):
    """A failing mail provider must not stop the in-app notifications for the same event"""
    inquiry = make_inquiry(users['customer'].id)

    def refuse(*args, **kwargs):
        raise DependencyFailure("mail relay unavailable")

    monkeypatch.setattr(outbox, 'send', refuse)

    SideEffectDispatcher.get(app_ctx).dispatch('inquiry_created', inquiry.id)

    recipients = {n.user_id for n in Notification.query.filter_by(title='New Inquiry Received')}
    assert recipients == {users['admin'].id, users['backoffice'].id}


def test_missing_entity_is_logged_not_raised(app_ctx, quoteflow_log):
    SideEffectDispatcher.get(app_ctx).dispatch('order_created', 12345)
    assert any('12345' in r.getMessage() for r in quoteflow_log.records if r.levelno == logging.ERROR)
