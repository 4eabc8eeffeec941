"""
Modèles SQLModel de l'entité User.

- UserBase : champs communs.
- User : modèle de table.
- UserCreate, UserRead : schémas API.
"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import utcnow


class UserBase(SQLModel):
    email: EmailStr = Field(unique=True, index=True, max_length=255, nullable=False)
    name: Optional[str] = Field(default=None, max_length=100)


class User(UserBase, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    password_hash: str = Field(nullable=False, max_length=255)
    is_active: bool = Field(default=True, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class UserCreate(UserBase):
    password: str = Field(min_length=8)
    raison_sociale: Optional[str] = Field(default=None, max_length=255)


class UserRead(UserBase):
    id: int
    is_active: bool
    created_at: datetime
