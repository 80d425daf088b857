"""
Pagination dependencies
"""
from fastapi import Query

from app.db.schemas.pagination import PaginationParams


def pagination_dependency(default_page_size: int = 20, max_page_size: int = 100):
    """
    Dependency factory for page/page_size query parameters

    Args:
        default_page_size: Page size when the caller does not send one
        max_page_size: Upper bound accepted for page_size

    Returns:
        Dependency function producing PaginationParams

    Example:
        @router.get("/")
        async def list_items(
            pagination: PaginationParams = Depends(pagination_dependency(10))
        ):
            ...
    """
    async def get_pagination(
        page: int = Query(1, ge=1, description="Page number"),
        page_size: int = Query(
            default_page_size,
            ge=1,
            le=max_page_size,
            description="Items per page"
        )
    ) -> PaginationParams:
        return PaginationParams(page=page, page_size=page_size)

    return get_pagination
