"""
Sequence Generator

Hands out human readable identifiers (``INQ-1201-2026``) backed by one
``sequence_counters`` row per entity type.
"""
from __future__ import annotations

import random
import threading
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quoteflow import db
from quoteflow.data.core.sequence_counter import SequenceCounter
from quoteflow.errors import PersistenceFailure, ValidationError
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.data.sequences")


class SequenceGenerator:
    """
    Counter-table sequence generator.

    The increment is a single ``UPDATE ... RETURNING`` statement executed in
    the caller's session, so the number is only consumed when the caller's
    transaction commits and concurrent callers serialize on the row lock.
    """

    _lock = threading.Lock()

    @staticmethod
    def format_id(prefix: str, separator: str, number: int, include_year: bool, year: int | None = None) -> str:
        identifier = prefix
        if separator:
            identifier += separator
        identifier += str(number).zfill(4)
        if include_year:
            identifier += (separator or '-') + str(year or datetime.utcnow().year)
        return identifier

    @staticmethod
    def fallback_id(entity_type: str) -> str:
        """Local identifier used when the counter table is unavailable; unique only probabilistically."""
        defaults = SequenceCounter.DEFAULTS.get(entity_type, {'prefix': entity_type[:3].upper()})
        return f"{defaults['prefix']}{datetime.utcnow():%y%m%d}{random.randint(0, 999):03d}"

    @classmethod
    def ensure_counter(cls, entity_type: str) -> SequenceCounter:
        """Return the counter row, creating it with the default prefix and start number."""
        if entity_type not in SequenceCounter.DEFAULTS:
            raise ValidationError(f"Unknown sequence type: {entity_type}")

        counter = db.session.execute(
            select(SequenceCounter).where(SequenceCounter.entity_type == entity_type)
        ).scalar_one_or_none()
        if counter is not None:
            return counter

        defaults = SequenceCounter.DEFAULTS[entity_type]
        try:
            with db.session.begin_nested():
                counter = SequenceCounter(
                    entity_type=entity_type,
                    prefix=defaults['prefix'],
                    separator='-',
                    include_year_suffix=True,
                    start_number=defaults['start_number'],
                    current_number=defaults['start_number'],
                )
                db.session.add(counter)
            logger.info(f"Created sequence counter for {entity_type}")
        except IntegrityError:
            # another request created it first
            counter = db.session.execute(
                select(SequenceCounter).where(SequenceCounter.entity_type == entity_type)
            ).scalar_one()
        return counter

    @classmethod
    def next_number(cls, entity_type: str) -> tuple[int, SequenceCounter]:
        with cls._lock:
            cls.ensure_counter(entity_type)
            number = db.session.execute(
                update(SequenceCounter)
                .where(SequenceCounter.entity_type == entity_type)
                .values(current_number=SequenceCounter.current_number + 1, updated_at=datetime.utcnow())
                .returning(SequenceCounter.current_number)
                .execution_options(synchronize_session=False)
            ).scalar_one()
        counter = db.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.entity_type == entity_type)
            .execution_options(populate_existing=True)
        ).scalar_one()
        return number, counter

    @classmethod
    def generate_id(cls, entity_type: str) -> str:
        """
        Generate the next identifier for ``entity_type``.

        Raises:
            PersistenceFailure: the counter could not be incremented
        """
        try:
            number, counter = cls.next_number(entity_type)
        except SQLAlchemyError as e:
            logger.error(f"Sequence increment failed for {entity_type}: {e}")
            raise PersistenceFailure(f"Could not allocate {entity_type} number") from e
        return cls.format_id(counter.prefix, counter.separator, number, counter.include_year_suffix)

    @classmethod
    def generate_id_or_fallback(cls, entity_type: str) -> str:
        """
        Like generate_id, but degrades to a local identifier.

        Must run before the caller stages any other writes: a failed
        increment rolls the session back.
        """
        try:
            return cls.generate_id(entity_type)
        except PersistenceFailure:
            db.session.rollback()
            identifier = cls.fallback_id(entity_type)
            logger.warning(f"Using fallback {entity_type} identifier {identifier}")
            return identifier

    @classmethod
    def preview_next_id(cls, entity_type: str) -> str:
        counter = cls.ensure_counter(entity_type)
        return cls.format_id(
            counter.prefix, counter.separator, counter.current_number + 1, counter.include_year_suffix
        )

    @classmethod
    def configure(
        cls,
        entity_type: str,
        *,
        prefix: str | None = None,
        start_number: int | None = None,
        separator: str | None = None,
        include_year_suffix: bool | None = None,
        updated_by_id: int | None = None,
    ) -> SequenceCounter:
        """
        Update numbering settings. Raising the start number lifts the running
        counter to it; lowering it never moves the counter backwards.
        """
        if prefix is not None and (not prefix or len(prefix) > SequenceCounter.MAX_PREFIX_LENGTH):
            raise ValidationError(f"Prefix must be 1-{SequenceCounter.MAX_PREFIX_LENGTH} characters")
        if separator is not None and len(separator) > SequenceCounter.MAX_SEPARATOR_LENGTH:
            raise ValidationError(f"Separator must be at most {SequenceCounter.MAX_SEPARATOR_LENGTH} characters")
        if start_number is not None and start_number < 0:
            raise ValidationError("Start number must be zero or greater")

        with cls._lock:
            counter = cls.ensure_counter(entity_type)
            if prefix is not None:
                counter.prefix = prefix.upper()
            if separator is not None:
                counter.separator = separator
            if include_year_suffix is not None:
                counter.include_year_suffix = include_year_suffix
            if updated_by_id is not None:
                counter.updated_by_id = updated_by_id
            if start_number is not None:
                counter.start_number = start_number
                db.session.flush()
                db.session.execute(
                    update(SequenceCounter)
                    .where(
                        SequenceCounter.entity_type == entity_type,
                        SequenceCounter.current_number < start_number,
                    )
                    .values(current_number=start_number)
                    .execution_options(synchronize_session=False)
                )
                db.session.refresh(counter)
        logger.info(f"Sequence settings for {entity_type} updated")
        return counter
