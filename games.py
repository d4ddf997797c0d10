# games.py
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from db import models as db_models
from db.database import get_db
from db.models import Role
from deps import require_roles
from errors import NotFound
from schemas import GameCreate, GameOut, Message, TokenClaims

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/getAll", response_model=List[GameOut])
def get_all(db: Session = Depends(get_db)):
    return db.query(db_models.Game).order_by(db_models.Game.commence_time).all()


@router.get("/getOne/{game_id}", response_model=GameOut)
def get_one(game_id: int, db: Session = Depends(get_db)):
    game = db.get(db_models.Game, game_id)
    if game is None:
        raise NotFound("Game not found")
    return game


@router.post("/create", response_model=GameOut)
def create(
    body: GameCreate,
    _: TokenClaims = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    if body.stadium_id is not None and db.get(db_models.Stadium, body.stadium_id) is None:
        raise NotFound("Stadium not found")

    game = db_models.Game(
        home_team=body.home_team,
        away_team=body.away_team,
        commence_time=body.commence_time,
        stadium_id=body.stadium_id,
    )
    db.add(game)
    db.commit()
    db.refresh(game)
    logger.info("Created game %s vs %s (%s)", game.home_team, game.away_team, game.id)
    return game


@router.delete("/remove/{game_id}", response_model=Message)
def remove(
    game_id: int,
    _: TokenClaims = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    game = db.get(db_models.Game, game_id)
    if game is None:
        raise NotFound("Game not found")
    db.delete(game)
    db.commit()
    return Message(message="Game removed")
