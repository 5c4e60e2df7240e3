"""
User model (account identity consumed by deals and favorites)
"""

from sqlalchemy import Column, String, Boolean, Float, Integer
from .base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    telegram = Column(String(100), nullable=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    avatar = Column(String(500), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    rating = Column(Float, default=0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
