from sqlalchemy import Boolean, Column, Integer, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship, declarative_base
import datetime

Base = declarative_base()

TITLE_MAX_LENGTH = 200


def utcnow() -> datetime.datetime:
    """Current UTC time as a naive datetime (the form stored in the database)."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def normalize_email(email: str) -> str:
    """Case-folded form of an email used for unique lookups."""
    return email.strip().upper()


# PUBLIC_INTERFACE
class User(Base):
    """
    Database model for a registered user.

    `email` keeps the address as entered; `normalized_email` is the
    case-insensitive lookup key and carries the uniqueness constraint.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(256), nullable=False)
    normalized_email = Column(String(256), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    description = Column(Text, default="", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    notes = relationship("Note", back_populates="owner", cascade="all, delete-orphan")


# PUBLIC_INTERFACE
class Note(Base):
    """
    Database model for a note. Every note has exactly one owner.
    """
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_public = Column(Boolean, default=True, nullable=False)

    owner = relationship("User", back_populates="notes")
