from datetime import datetime
from typing import Optional

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import utcnow


class ClientBase(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    company_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=255)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    city: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class Client(ClientBase, table=True):
    __tablename__ = "clients"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class ClientCreate(ClientBase):
    email: Optional[EmailStr] = None


class ClientUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None


class ClientRead(ClientBase):
    id: int
    user_id: int
    created_at: datetime
