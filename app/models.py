from sqlalchemy import Column, Integer, String, DateTime
from .database import Base
from Security.encrypted_type import EncryptedString, EncryptedText
import datetime


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    # Encrypted at rest, decrypted transparently on load
    email = Column(EncryptedString(512), nullable=False)
    phone = Column(EncryptedString(512), nullable=False)
    address = Column(EncryptedText, nullable=False)

    created_at = Column(DateTime, nullable=False, default=_utcnow, index=True)

    ENCRYPTED_FIELDS = ("email", "phone", "address")

    def __repr__(self):
        return f"<User id={self.id} name={self.name!r}>"
