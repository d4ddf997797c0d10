# main.py
import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import games
import stadiums
import users
from config import Settings
from db import models as db_models
from db.database import build_engine, build_session_factory
from security import PasswordHasher, TokenIssuer

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s - %(message)s",
        stream=sys.stdout,
    )
    for noisy in ("passlib", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _bootstrap_admin(session_factory: sessionmaker, hasher: PasswordHasher, settings: Settings) -> None:
    """Create the configured ADMIN account on first start."""
    if not settings.admin_email or not settings.admin_password:
        return

    email = settings.admin_email.strip().lower()
    with session_factory() as db:
        if auth.get_user_by_email(db, email) is not None:
            return
        db.add(db_models.User(
            email=email,
            password=hasher.hash(settings.admin_password),
            role=db_models.Role.ADMIN,
            is_verified=True,
        ))
        try:
            db.commit()
        except IntegrityError:
            # Another worker created it first
            db.rollback()
            return
    logger.info("Bootstrapped admin user %s", email)


# --- Error envelope: {success: false, message} ---

async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API. Run with ``uvicorn main:create_app --factory``."""
    settings = settings or Settings.from_env()
    _configure_logging(settings.log_level)

    engine = build_engine(settings.database_url)
    db_models.Base.metadata.create_all(bind=engine)
    session_factory = build_session_factory(engine)

    app = FastAPI(
        title="Stadium Auth API",
        description="Registration, login and role-guarded CRUD over users, stadiums and games.",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.password_hasher = PasswordHasher.from_settings(settings)
    app.state.token_issuer = TokenIssuer.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(users.router, prefix="/user", tags=["user"])
    app.include_router(stadiums.router, prefix="/stadium", tags=["stadium"])
    app.include_router(games.router, prefix="/game", tags=["game"])

    @app.get("/")
    def read_root():
        return {"message": "Stadium Auth API is running."}

    _bootstrap_admin(session_factory, app.state.password_hasher, settings)
    return app
