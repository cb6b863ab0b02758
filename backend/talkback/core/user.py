# talkback/core/user.py

from sqlalchemy.orm import Session

from talkback.models.schemas import UserRecord
from talkback.models.user import User


def register_user(db: Session, user_id: str, full_name: str, profile_pic: str = "") -> UserRecord:
    """Create a user, or refresh the profile of an existing one"""
    existing = db.get(User, user_id)
    if existing:
        existing.full_name = full_name
        existing.profile_pic = profile_pic
        user = existing
    else:
        user = User(id=user_id, full_name=full_name, profile_pic=profile_pic)
        db.add(user)

    db.commit()
    db.refresh(user)
    return UserRecord.model_validate(user)


def get_user(db: Session, user_id: str) -> UserRecord | None:
    user = db.get(User, user_id)
    return UserRecord.model_validate(user) if user else None


def list_contacts(db: Session, user_id: str) -> list[UserRecord]:
    """Every registered user except *user_id* (the chat sidebar)."""
    users = db.query(User).filter(User.id != user_id).order_by(User.full_name).all()
    return [UserRecord.model_validate(u) for u in users]
