"""
Side-Effect Dispatcher

Runs the notification tasks for an event after the primary transaction has
committed and the response has gone out. Each task runs in its own
application context with its own failure boundary.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from flask import after_this_request, current_app, has_request_context

from quoteflow import db
from quoteflow.errors import DependencyFailure
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.business.notifications.dispatcher")

TaskHandler = Callable[[int, dict], None]


class SideEffectDispatcher:
    EXTENSION_KEY = "quoteflow.dispatcher"

    def __init__(self, app, *, max_workers: int = 4, run_inline: bool = False,
                 registry: dict[str, list[tuple[str, TaskHandler]]] | None = None):
        self.app = app
        self.run_inline = run_inline
        self.executor = None if run_inline else ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="side-effects"
        )
        if registry is None:
            from quoteflow.business.notifications.tasks import EVENT_TASKS
            registry = EVENT_TASKS
        self.registry = registry

    @classmethod
    def init_app(cls, app) -> "SideEffectDispatcher":
        dispatcher = cls(
            app,
            max_workers=app.config['NOTIFICATION_WORKERS'],
            run_inline=app.config['NOTIFICATIONS_RUN_INLINE'],
        )
        app.extensions[cls.EXTENSION_KEY] = dispatcher
        return dispatcher

    @classmethod
    def get(cls, app=None) -> "SideEffectDispatcher":
        return (app or current_app).extensions[cls.EXTENSION_KEY]

    def dispatch(self, event_kind: str, entity_id: int, context: dict | None = None) -> None:
        """
        Schedule every task registered for ``event_kind``. Never raises.

        Inside a request the tasks start once the response has been sent;
        elsewhere they start immediately.
        """
        tasks = self.registry.get(event_kind)
        if not tasks:
            logger.warning(f"No side effects registered for event {event_kind}")
            return
        context = dict(context or {})

        if not has_request_context():
            self._schedule(event_kind, entity_id, context, tasks)
            return

        @after_this_request
        def _schedule_after_response(response):
            if self.run_inline:
                self._schedule(event_kind, entity_id, context, tasks)
            else:
                response.call_on_close(lambda: self._schedule(event_kind, entity_id, context, tasks))
            return response

    def _schedule(self, event_kind, entity_id, context, tasks) -> None:
        for name, handler in tasks:
            if self.run_inline:
                self._run_task(event_kind, name, handler, entity_id, context)
            else:
                self.executor.submit(self._run_task, event_kind, name, handler, entity_id, context)

    def _run_task(self, event_kind: str, name: str, handler: TaskHandler, entity_id: int, context: dict) -> None:
        with self.app.app_context():
            try:
                handler(entity_id, context)
                logger.debug(f"Side effect {event_kind}.{name} done for {entity_id}")
            except Exception as e:
                failure = e if isinstance(e, DependencyFailure) else DependencyFailure(str(e))
                logger.error(
                    f"Side effect {event_kind}.{name} failed for entity {entity_id}: {failure.message}",
                    exc_info=True,
                )
                db.session.rollback()

    def shutdown(self, wait: bool = True) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=wait)
