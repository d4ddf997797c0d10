# stadiums.py
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from db import models as db_models
from db.database import get_db
from db.models import Role
from deps import require_roles
from errors import NotFound
from schemas import Message, StadiumCreate, StadiumOut, StadiumUpdate, TokenClaims

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_stadium(db: Session, stadium_id: int) -> db_models.Stadium:
    stadium = db.get(db_models.Stadium, stadium_id)
    if stadium is None:
        raise NotFound("Stadium not found")
    return stadium


@router.get("/getAll", response_model=List[StadiumOut])
def get_all(db: Session = Depends(get_db)):
    return db.query(db_models.Stadium).order_by(db_models.Stadium.id).all()


@router.get("/getOne/{stadium_id}", response_model=StadiumOut)
def get_one(stadium_id: int, db: Session = Depends(get_db)):
    return _get_stadium(db, stadium_id)


@router.post("/create", response_model=StadiumOut)
def create(
    body: StadiumCreate,
    _: TokenClaims = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    stadium = db_models.Stadium(title=body.title, address=body.address)
    db.add(stadium)
    db.commit()
    db.refresh(stadium)
    logger.info("Created stadium %s (%s)", stadium.title, stadium.id)
    return stadium


@router.patch("/update/{stadium_id}", response_model=StadiumOut)
def update(
    stadium_id: int,
    body: StadiumUpdate,
    _: TokenClaims = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    stadium = _get_stadium(db, stadium_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(stadium, key, value)
    db.commit()
    db.refresh(stadium)
    return stadium


@router.delete("/remove/{stadium_id}", response_model=Message)
def remove(
    stadium_id: int,
    _: TokenClaims = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    stadium = _get_stadium(db, stadium_id)
    # Games outlive their stadium; SQLite does not enforce ON DELETE SET NULL
    db.query(db_models.Game).filter(db_models.Game.stadium_id == stadium_id).update(
        {db_models.Game.stadium_id: None}
    )
    db.delete(stadium)
    db.commit()
    logger.info("Removed stadium %s", stadium_id)
    return Message(message="Stadium removed")
