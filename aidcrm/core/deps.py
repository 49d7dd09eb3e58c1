"""FastAPI dependencies for authentication, the entity store and database access."""

import logging
from typing import Generator

import jwt
from fastapi import Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from aidcrm.core.security import decode_session_token
from aidcrm.db.session import SessionLocal
from aidcrm.db.sql_store import SqlEntityStore
from aidcrm.db.store import EntityStore
from aidcrm.schemas.auth import Actor
from aidcrm.services.orchestrator import MutationOrchestrator

logger = logging.getLogger(__name__)

# Cookie name
COOKIE_NAME = "aid_session"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return SqlEntityStore(db)


def get_orchestrator(store: EntityStore = Depends(get_store)) -> MutationOrchestrator:
    return MutationOrchestrator(store)


def _read_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_current_actor(
    request: Request,
    store: EntityStore = Depends(get_store),
) -> Actor | None:
    """
    Resolve the acting user from the session token.

    Returns None (unauthenticated) unless:
    - a token is present in the cookie or Authorization header
    - the JWT is valid and not expired
    - the user exists
    - the token version matches (for revocation support)

    Inactive users come back as an inactive Actor; the core treats them
    as unauthenticated.
    """
    token = _read_token(request)
    if not token:
        return None

    try:
        payload = decode_session_token(token)
    except (jwt.InvalidTokenError, ValidationError):
        logger.info("session_token_rejected")
        return None

    user = store.get_user(payload.sub)
    if user is None:
        return None

    if user.token_version != payload.token_version:
        logger.info("session_token_revoked")
        return None

    return Actor.from_user(user)
