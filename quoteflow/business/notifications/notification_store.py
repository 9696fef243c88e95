from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, update

from quoteflow import db
from quoteflow.business.core.persistence import commit
from quoteflow.data.notifications import Notification
from quoteflow.errors import NotFound, ValidationError
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.notifications.store")


class NotificationStore:
    """Per-user inbox of notification records."""

    DEFAULT_LIMIT = 50
    MAX_LIMIT = 200

    @staticmethod
    def _validate(title: str, message: str, type_: str, related_entity: tuple | None) -> None:
        if not title or not message:
            raise ValidationError("Notification title and message are required")
        if type_ not in Notification.TYPES:
            raise ValidationError(f"Notification type must be one of: {', '.join(Notification.TYPES)}")
        if related_entity is not None and related_entity[0] not in Notification.RELATED_ENTITY_TYPES:
            raise ValidationError(f"Unknown related entity type: {related_entity[0]}")

    @classmethod
    def create(
        cls,
        user_id: int,
        title: str,
        message: str,
        type_: str = "info",
        related_entity: tuple[str, int] | None = None,
        metadata: dict | None = None,
        *,
        autocommit: bool = True,
    ) -> Notification:
        cls._validate(title, message, type_, related_entity)
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type_,
            related_entity_type=related_entity[0] if related_entity else None,
            related_entity_id=related_entity[1] if related_entity else None,
            metadata_json=metadata or {},
        )
        db.session.add(notification)
        if autocommit:
            commit("create notification")
        return notification

    @classmethod
    def create_for_users(cls, user_ids, title, message, type_="info", related_entity=None, metadata=None) -> int:
        count = 0
        for user_id in user_ids:
            cls.create(user_id, title, message, type_, related_entity, metadata, autocommit=False)
            count += 1
        commit("create notifications")
        logger.debug(f"Created {count} '{title}' notification(s)")
        return count

    @classmethod
    def list_for_user(cls, user_id: int, limit: int | None = None, *, unread_only: bool = False) -> list[Notification]:
        # unset or zero falls back to the default
        limit = max(1, min(limit or cls.DEFAULT_LIMIT, cls.MAX_LIMIT))
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    @staticmethod
    def mark_read(notification_id: int, user_id: int) -> Notification:
        notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
        if notification is None:
            raise NotFound("Notification not found")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            commit("mark notification read")
        return notification

    @staticmethod
    def mark_all_read(user_id: int) -> int:
        result = db.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        commit("mark notifications read")
        return result.rowcount

    @staticmethod
    def unread_count(user_id: int) -> int:
        return db.session.execute(
            db.select(func.count(Notification.id)).where(
                Notification.user_id == user_id, Notification.is_read.is_(False)
            )
        ).scalar_one()
