"""
Identifier numbering: format, configuration and uniqueness under concurrent callers.
"""
import re
import threading
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from quoteflow import create_app, db
from quoteflow.data.core.sequence_counter import SequenceCounter
from quoteflow.data.core.sequence_generator import SequenceGenerator
from quoteflow.errors import PersistenceFailure, ValidationError

YEAR = datetime.utcnow().year


def test_format_id():
    assert SequenceGenerator.format_id('INQ', '-', 7, True, 2026) == 'INQ-0007-2026'
    assert SequenceGenerator.format_id('ORD', '-', 12345, False) == 'ORD-12345'
    assert SequenceGenerator.format_id('QTN', '', 501, True, 2026) == 'QTN0501-2026', \
        "An empty separator still separates the year"


def test_first_identifier_follows_start_number(app_ctx):
    assert SequenceGenerator.generate_id('inquiry') == f'INQ-1201-{YEAR}'
    assert SequenceGenerator.generate_id('inquiry') == f'INQ-1202-{YEAR}'
    assert SequenceGenerator.generate_id('quotation') == f'QTN-0501-{YEAR}'
    assert SequenceGenerator.generate_id('order') == f'ORD-0801-{YEAR}'
    db.session.commit()

    counter = SequenceCounter.query.filter_by(entity_type='inquiry').one()
    assert counter.current_number == 1202


def test_preview_does_not_consume(app_ctx):
    assert SequenceGenerator.preview_next_id('order') == f'ORD-0801-{YEAR}'
    assert SequenceGenerator.preview_next_id('order') == f'ORD-0801-{YEAR}'
    assert SequenceGenerator.generate_id('order') == f'ORD-0801-{YEAR}'


def test_rolled_back_number_is_not_consumed(app_ctx):
    SequenceGenerator.ensure_counter('inquiry')
    db.session.commit()

    SequenceGenerator.generate_id('inquiry')
    db.session.rollback()

    assert SequenceGenerator.generate_id('inquiry') == f'INQ-1201-{YEAR}'


def test_unknown_entity_type(app_ctx):
    with pytest.raises(ValidationError):
        SequenceGenerator.generate_id('invoice')


def test_configure_prefix_and_format(app_ctx):
    SequenceGenerator.configure('inquiry', prefix='rfq', separator='', include_year_suffix=False)
    db.session.commit()

    assert SequenceGenerator.generate_id('inquiry') == 'RFQ1201'


def test_configure_start_number_only_moves_forward(app_ctx):
    SequenceGenerator.configure('order', start_number=5000)
    db.session.commit()
    assert SequenceGenerator.generate_id('order') == f'ORD-5001-{YEAR}'
    db.session.commit()

    SequenceGenerator.configure('order', start_number=10)
    db.session.commit()
    counter = SequenceCounter.query.filter_by(entity_type='order').one()
    assert counter.start_number == 10
    assert counter.current_number == 5001, "Lowering the start number must not rewind the counter"
    assert SequenceGenerator.generate_id('order') == f'ORD-5002-{YEAR}'


@pytest.mark.parametrize('settings', [
    {'prefix': ''},
    {'prefix': 'TOOLONGX'},
    {'separator': '---'},
    {'start_number': -1},
])
def test_configure_rejects_bad_settings(app_ctx, settings):
    with pytest.raises(ValidationError):
        SequenceGenerator.configure('quotation', **settings)


def test_failed_increment_raises_persistence_failure(app_ctx, monkeypatch):
    def broken(cls, entity_type):
        raise OperationalError("UPDATE sequence_counters", {}, Exception("database is locked"))

    monkeypatch.setattr(SequenceGenerator, 'next_number', classmethod(broken))

    with pytest.raises(PersistenceFailure):
        SequenceGenerator.generate_id('inquiry')


def test_fallback_identifier(app_ctx, monkeypatch):
    def broken(cls, entity_type):
        raise OperationalError("UPDATE sequence_counters", {}, Exception("database is locked"))

    monkeypatch.setattr(SequenceGenerator, 'next_number', classmethod(broken))

    identifier = SequenceGenerator.generate_id_or_fallback('quotation')
    assert re.fullmatch(r"QTN\d{6}\d{3}", identifier), identifier
    assert identifier[3:9] == datetime.utcnow().strftime('%y%m%d')


def test_concurrent_callers_get_distinct_numbers(tmp_path):
    """Threads share one file database, each with its own session"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'sequences.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'NOTIFICATIONS_RUN_INLINE': True,
        'ENABLE_HTTPS': False,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
    })
    with app.app_context():
        db.create_all()
        SequenceGenerator.ensure_counter('order')
        db.session.commit()

    issued = []
    errors = []
    issued_lock = threading.Lock()

    def worker():
        for _ in range(5):
            with app.app_context():
                try:
                    identifier = SequenceGenerator.generate_id('order')
                    db.session.commit()
                except Exception as e:
                    errors.append(e)
                    return
            with issued_lock:
                issued.append(identifier)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert not errors, errors
    assert len(issued) == 40
    assert len(set(issued)) == 40, "Every caller must receive a distinct identifier"
    numbers = sorted(int(identifier.split('-')[1]) for identifier in issued)
    assert numbers == list(range(801, 841))

    with app.app_context():
        assert SequenceCounter.query.filter_by(entity_type='order').one().current_number == 840
        db.session.remove()
        db.engine.dispose()
