import datetime
import logging
import os
from typing import Optional

from fastapi import Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import Text, type_coerce
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from Security.field_level_encryption import FieldEncryptionError

logger = logging.getLogger(__name__)

STORE_ERRORS = (SQLAlchemyError, FieldEncryptionError)


class UserIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    def missing_fields(self):
        return [
            field for field in ("name", "email", "phone", "address")
            if not (getattr(self, field) or "").strip()
        ]


def _raw_columns():
    # Coercing to Text skips the encrypted types' result processing, so the
    # stored ciphertext comes back as-is.
    return [
        type_coerce(getattr(User, field), Text).label(f"raw_{field}")
        for field in User.ENCRYPTED_FIELDS
    ]


def _iso(value: datetime.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.isoformat()


def serialize_user(user: User, raw) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "encrypted": {
            field: raw[f"raw_{field}"] or "" for field in User.ENCRYPTED_FIELDS
        },
        "decrypted": {
            field: getattr(user, field) or "" for field in User.ENCRYPTED_FIELDS
        },
        "createdAt": _iso(user.created_at),
    }


def list_users(db: Session) -> list[dict]:
    rows = (
        db.query(User, *_raw_columns())
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return [serialize_user(row[0], row._mapping) for row in rows]


def create_user(db: Session, payload: UserIn) -> dict:
    user = User(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        address=payload.address,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    raw = db.query(*_raw_columns()).filter(User.id == user.id).one()
    return serialize_user(user, raw._mapping)


def delete_user(db: Session, user_id: int) -> bool:
    # Bulk delete never loads the row, so it works even if the row cannot be decrypted
    deleted = db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.commit()
    return deleted > 0


def register_api_routes(app):
    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    # FOR DEMO PURPOSES ONLY: never expose the key in a real deployment
    @app.get("/api/config")
    async def get_config():
        return {"encryptionKey": os.getenv("ENCRYPTION_KEY", "")}

    @app.get("/api/users")
    def get_users(db: Session = Depends(get_db)):
        try:
            return list_users(db)
        except STORE_ERRORS:
            logger.exception("Error fetching users")
            db.rollback()
            raise HTTPException(status_code=500, detail="Failed to fetch users")

    @app.post("/api/users")
    def post_user(payload: UserIn, db: Session = Depends(get_db)):
        missing = payload.missing_fields()
        if missing:
            logger.info("Rejected user creation, missing fields: %s", ", ".join(missing))
            raise HTTPException(status_code=400, detail="All fields are required")
        try:
            return create_user(db, payload)
        except STORE_ERRORS:
            logger.exception("Error creating user")
            db.rollback()
            raise HTTPException(status_code=500, detail="Failed to create user")

    @app.delete("/api/users/{user_id}")
    def remove_user(user_id: int, db: Session = Depends(get_db)):
        try:
            deleted = delete_user(db, user_id)
        except STORE_ERRORS:
            logger.exception("Error deleting user %s", user_id)
            db.rollback()
            raise HTTPException(status_code=500, detail="Failed to delete user")
        if not deleted:
            raise HTTPException(status_code=404, detail="User not found")
        return {"message": "User deleted successfully"}
