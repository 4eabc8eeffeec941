from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    items: List[T]
    total: int


class ErrorResponse(BaseModel):
    """Corps de réponse de toutes les erreurs métier."""
    error: str
