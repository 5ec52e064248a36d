"""HTTP surface: the Lalamove proxy used by the storefront and order routes."""

import logging
from collections.abc import Generator
from typing import Callable

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session, sessionmaker

from delivery_dispatch.base_client import CourierClient
from delivery_dispatch.config import (
    LalamoveCredentials,
    Settings,
    build_store_config,
    configure_logging,
)
from delivery_dispatch.db import init_db, make_engine, make_session_factory, session_scope
from delivery_dispatch.delivery_orders import create_order
from delivery_dispatch.errors import DispatchError
from delivery_dispatch.lalamove_client import LalamoveClient
from delivery_dispatch.order_service import get_order, update_order
from delivery_dispatch.quotes import get_quote
from delivery_dispatch.schemas import FIELD_ERRORS, LalamoveRequestIn, OrderUpdateIn
from delivery_dispatch.tasks import make_dispatcher
from delivery_dispatch.worker import celery

logger = logging.getLogger("delivery_dispatch.api")

ACTIONS = ("quote", "order")


def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


def create_app(
    settings: Settings | None = None,
    client_factory: Callable[[LalamoveCredentials], CourierClient] | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Process settings; read from the environment if omitted.
        client_factory: Builds a courier client from credentials; defaults
            to LalamoveClient with the configured timeout.
        session_factory: SQLAlchemy session factory; defaults to one bound
            to ``settings.database_url`` with tables created.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if client_factory is None:
        def client_factory(credentials: LalamoveCredentials) -> CourierClient:
            return LalamoveClient(credentials, timeout=settings.lalamove_timeout)

    if session_factory is None:
        engine = make_engine(settings.database_url)
        init_db(engine)
        session_factory = make_session_factory(engine)

    if settings.dispatch_eager:
        celery.conf.task_always_eager = True
    dispatch = make_dispatcher(session_factory, client_factory)

    app = FastAPI(title="delivery-dispatch", version="0.1.0")
    app.state.session_factory = session_factory
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS", "GET", "PATCH"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(DispatchError)
    async def _dispatch_error(_req: Request, exc: DispatchError):
        return _error(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_req: Request, exc: RequestValidationError):
        for err in exc.errors():
            loc = err.get("loc", ())
            field = loc[1] if len(loc) > 1 else None
            if field in FIELD_ERRORS:
                return _error(FIELD_ERRORS[field], 400)
        return _error("Invalid JSON payload", 400)

    @app.exception_handler(Exception)
    async def _unhandled(_req: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return _error("Internal server error", 500)

    def get_session() -> Generator[Session, None, None]:
        yield from session_scope(session_factory)

    @app.options("/api/lalamove/{action}")
    def lalamove_options(action: str) -> Response:
        return Response(status_code=204)

    @app.post("/api/lalamove/{action}")
    async def lalamove_proxy(action: str, payload: LalamoveRequestIn):
        if action not in ACTIONS:
            return _error("Action not supported", 405)

        config = build_store_config(payload.model_dump())
        if config is None:
            return _error("Invalid delivery store configuration", 400)

        try:
            client = client_factory(LalamoveCredentials.from_env())
        except ValueError as exc:
            logger.error("Lalamove credentials unavailable: %s", exc)
            return _error(str(exc), 500)

        if action == "quote":
            quote = await run_in_threadpool(
                get_quote,
                client,
                config,
                payload.deliveryAddress or "",
                payload.deliveryLat,
                payload.deliveryLng,
            )
            return quote.to_dict()

        courier_order = await run_in_threadpool(
            create_order,
            client,
            config,
            payload.quotationId or "",
            payload.recipientName or "",
            payload.recipientPhone or "",
            sender_stop_id=payload.senderStopId or None,
            recipient_stop_id=payload.recipientStopId or None,
            remarks=payload.recipientRemarks or "",
            metadata=payload.metadata or {},
        )
        return courier_order.to_dict()

    @app.get("/api/orders/{order_id}")
    def read_order(order_id: str, session: Session = Depends(get_session)):
        return {"order": get_order(session, order_id).to_dict()}

    @app.patch("/api/orders/{order_id}")
    async def patch_order(
        order_id: str, payload: OrderUpdateIn, session: Session = Depends(get_session),
    ):
        changes = payload.model_dump(exclude_unset=True)
        order = await run_in_threadpool(update_order, session, order_id, changes, dispatch)
        return {"order": order.to_dict()}

    return app
