from typing import Annotated, Tuple

from fastapi import Depends, Query

from devisfacture.config import settings


def get_pagination_params(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0)
) -> Tuple[int, int]:
    return limit, offset


PaginationParams = Annotated[Tuple[int, int], Depends(get_pagination_params)]
