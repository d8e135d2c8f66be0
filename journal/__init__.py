"""Application factory and top-level wiring for the Journal API.

``create_app`` brings together configuration, the database, the API routers,
middlewares and error handling. The store is handed to the app rather than
imported, so a process (or a test) owns exactly one engine for its lifetime.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.errors import ApiError, api_error_handler, http_exception_handler, validation_exception_handler
from .db.migrate import run_migrations
from .db.session import Base, build_engine, build_session_factory
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the SQLAlchemy models registers them with the metadata. Without
# this step ``Base.metadata.create_all`` would not know about our tables.
from .models import entry as _entry  # noqa: F401
from .models import user as _user  # noqa: F401


def create_app(engine: Engine | None = None) -> FastAPI:
    engine = engine if engine is not None else build_engine(settings.database_url)

    # ``create_all`` covers brand-new databases, ``run_migrations`` older ones.
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)

    app = FastAPI(title=settings.APP_NAME)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    # ---------- Routers ----------
    from .routers import api_auth as api_auth_router
    from .routers import api_entries as api_entries_router
    from .routers import api_users as api_users_router

    app.include_router(api_users_router.router)
    app.include_router(api_entries_router.router)
    app.include_router(api_auth_router.router)

    # ---------- Exception handling ----------
    # Every failure leaves as {"error": "<message>"}.
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # ---------- Middlewares (last added runs first) ----------
    app.add_middleware(SecurityHeadersMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Authorization", "Content-Type"],
            expose_headers=["Location", "X-Request-ID"],
        )
    app.add_middleware(RequestIdMiddleware)
    return app


__all__ = ["create_app"]
