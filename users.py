# users.py
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import build_auth_response, get_user_by_email
from db import models as db_models
from db.database import get_db
from db.models import Role
from deps import get_password_hasher, get_token_issuer, require_roles
from errors import NotFound, ValidationConflict
from schemas import AuthResponse, GameOut, Message, TokenClaims, UserGameOut, UserPublic, UserUpdate
from security import PasswordHasher, TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter()


def _current_user(db: Session, identity: TokenClaims) -> db_models.User:
    user = db.get(db_models.User, identity.id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.patch("/update", response_model=AuthResponse)
def update(
    body: UserUpdate,
    identity: TokenClaims = Depends(require_roles(Role.USER)),
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Change the caller's email and/or password. The token is re-issued."""
    user = _current_user(db, identity)

    if body.email is not None and body.email != user.email:
        if get_user_by_email(db, body.email):
            raise ValidationConflict("Email is already in use")
        user.email = body.email
    if body.password is not None:
        user.password = hasher.hash(body.password)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationConflict("Email is already in use")
    db.refresh(user)

    logger.info("Updated user %s", user.id)
    return build_auth_response(user, issuer)


@router.get("/getAll", response_model=List[UserPublic])
def get_all(
    _: TokenClaims = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    return db.query(db_models.User).order_by(db_models.User.id).all()


@router.get("/getOne/{user_id}", response_model=UserPublic)
def get_one(
    user_id: int,
    _: TokenClaims = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    user = db.get(db_models.User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@router.delete("/remove", response_model=Message)
def remove(
    identity: TokenClaims = Depends(require_roles(Role.USER)),
    db: Session = Depends(get_db),
):
    user = _current_user(db, identity)
    db.delete(user)
    db.commit()
    logger.info("Removed user %s", identity.id)
    return Message(message="User removed")


# --- Games joined by the caller ---

@router.get("/games", response_model=List[GameOut])
def my_games(
    identity: TokenClaims = Depends(require_roles(Role.USER, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    return (
        db.query(db_models.Game)
        .join(db_models.UserGame, db_models.UserGame.game_id == db_models.Game.id)
        .filter(db_models.UserGame.user_id == identity.id)
        .order_by(db_models.Game.commence_time)
        .all()
    )


@router.post("/games/{game_id}", response_model=UserGameOut)
def join_game(
    game_id: int,
    identity: TokenClaims = Depends(require_roles(Role.USER, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    user = _current_user(db, identity)
    if db.get(db_models.Game, game_id) is None:
        raise NotFound("Game not found")

    link = db_models.UserGame(user_id=user.id, game_id=game_id)
    db.add(link)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationConflict("Already joined this game")
    db.refresh(link)
    return link


@router.delete("/games/{game_id}", response_model=Message)
def leave_game(
    game_id: int,
    identity: TokenClaims = Depends(require_roles(Role.USER, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    link = (
        db.query(db_models.UserGame)
        .filter(db_models.UserGame.user_id == identity.id, db_models.UserGame.game_id == game_id)
        .first()
    )
    if link is None:
        raise NotFound("Not joined to this game")
    db.delete(link)
    db.commit()
    return Message(message="Left game")
