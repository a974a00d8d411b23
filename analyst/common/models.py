from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


# =========================
# Users (the analysed entity)
# =========================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    first_name = Column(String)
    last_name = Column(String)
    email = Column(String, index=True)
    gender = Column(String)
    job_title = Column(String)
    device = Column(String)
    car = Column(String)
    language = Column(String)
    country = Column(String, index=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    embedding = relationship(
        "UserEmbedding",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )


# =========================
# UserEmbedding (knowledge base)
# =========================
class UserEmbedding(Base):
    """
    One natural-language document per user plus its embedding vector.

    The vector is stored as JSON text so any SQL backend can hold it;
    similarity search is a full scan done in Python.
    """

    __tablename__ = "user_embeddings"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    content = Column(Text, nullable=False)
    embedding = Column(Text, nullable=False)  # JSON array of floats

    user = relationship("User", back_populates="embedding")
