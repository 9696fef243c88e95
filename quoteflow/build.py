#!/usr/bin/env python3
"""
Database build for QuoteFlow
Creates tables, numbering counters and the default staff accounts
"""

import os

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.data.core.sequence_counter import SequenceCounter
from quoteflow.data.core.sequence_generator import SequenceGenerator
from quoteflow.data.core.user import User
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.build")

# username, role, password variable
DEFAULT_USERS = (
    ('admin', 'admin', 'ADMIN_USER_PASSWORD'),
    ('backoffice', 'backoffice', 'BACKOFFICE_USER_PASSWORD'),
)


def build_models():
    logger.info("Creating tables")
    db.create_all()


def insert_critical_data():
    """
    Seed the numbering counters and the default staff accounts.

    Safe to run repeatedly; existing rows are left alone.
    """
    for entity_type in SequenceCounter.DEFAULTS:
        SequenceGenerator.ensure_counter(entity_type)

    for username, role, password_var in DEFAULT_USERS:
        if User.query.filter_by(username=username).first():
            continue
        password = os.environ.get(password_var)
        if not password:
            logger.warning(f"{password_var} not set - skipping creation of '{username}' user")
            continue
        user = User(username=username, email=f"{username}@quoteflow.local", role=role)
        user.set_password(password)
        db.session.add(user)
        logger.info(f"Created default {role} user '{username}'")

    commit("insert critical data")


def verify_critical_data():
    """
    Returns:
        bool: True if every counter and an admin account exist
    """
    counters = {c.entity_type for c in SequenceCounter.query.all()}
    missing = set(SequenceCounter.DEFAULTS) - counters
    if missing:
        logger.warning(f"Sequence counters missing: {', '.join(sorted(missing))}")
        return False
    if not User.query.filter_by(role='admin').first():
        logger.warning("No admin user found")
        return False
    return True


def build_database(app, build_tables=True):
    """
    Args:
        app: the Flask application to build for
        build_tables (bool): create missing tables before seeding
    """
    with app.app_context():
        logger.info("Starting database build")
        if build_tables:
            build_models()
        insert_critical_data()
        if not verify_critical_data():
            logger.warning("Critical data incomplete; set ADMIN_USER_PASSWORD and rebuild")
        logger.info("Database build completed successfully")
