"""Background courier dispatch, run by the Celery worker."""

import logging
from typing import Any, Callable

from celery import Task
from sqlalchemy.orm import Session, sessionmaker

from delivery_dispatch.config import Settings
from delivery_dispatch.db import init_db, make_engine, make_session_factory
from delivery_dispatch.lalamove_client import LalamoveClient
from delivery_dispatch.order_service import ClientFactory, dispatch_courier_order
from delivery_dispatch.worker import celery

logger = logging.getLogger("delivery_dispatch.tasks")


class CourierDispatchTask(Task):
    """Task base that owns the database and courier client factories.

    A worker builds both from the environment on first use. An app that
    runs tasks in-process hands over its own through ``use()``.
    """

    _session_factory: sessionmaker[Session] | None = None
    _client_factory: ClientFactory | None = None

    def use(
        self,
        session_factory: sessionmaker[Session] | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._client_factory = client_factory

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            engine = make_engine(Settings.from_env().database_url)
            init_db(engine)
            self._session_factory = make_session_factory(engine)
        return self._session_factory

    @property
    def client_factory(self) -> ClientFactory:
        if self._client_factory is None:
            timeout = Settings.from_env().lalamove_timeout
            self._client_factory = lambda credentials: LalamoveClient(credentials, timeout=timeout)
        return self._client_factory


@celery.task(base=CourierDispatchTask, bind=True, name="delivery_dispatch.dispatch_courier_order")
def dispatch_courier_order_task(self, order_id: str) -> str | None:
    """Create and record the Lalamove order for a newly confirmed order.

    Failures end here, in the log; the task is never retried.
    """
    try:
        return dispatch_courier_order(self.session_factory, self.client_factory, order_id)
    except Exception:
        logger.exception("Courier dispatch for order %s failed", order_id)
        return None


def make_dispatcher(
    session_factory: sessionmaker[Session] | None = None,
    client_factory: ClientFactory | None = None,
) -> Callable[[str], Any]:
    """Return the ``dispatch`` hook for update_order, queueing the Celery task."""
    dispatch_courier_order_task.use(session_factory, client_factory)

    def dispatch(order_id: str):
        return dispatch_courier_order_task.delay(order_id)

    return dispatch
