# talkback/api/users.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from talkback.core.user import get_user, register_user
from talkback.infra.postgres import get_db
from talkback.models.schemas import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users")


class RegisterUserSchema(CamelModel):
    user_id: str = Field(min_length=1, max_length=100)
    full_name: str = Field(min_length=1, max_length=200)
    profile_pic: str = ""


@router.post("/register")
def register_user_endpoint(payload: RegisterUserSchema, db: Session = Depends(get_db)):
    try:
        user = register_user(db, payload.user_id, payload.full_name, payload.profile_pic)
    except SQLAlchemyError:
        logger.exception(f"Registration failed for {payload.user_id}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

    logger.info(f"User {payload.user_id} registered")
    return user.model_dump(mode="json", by_alias=True)


@router.get("/{user_id}")
def get_user_endpoint(user_id: str, db: Session = Depends(get_db)):
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user.model_dump(mode="json", by_alias=True)
