"""Page/per_page handling shared by the CRM list endpoints."""

from dataclasses import dataclass

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery


DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass
class PaginationParams:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def pages_for(self, total: int) -> int:
        return -(-total // self.per_page) if self.per_page else 0


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="1-indexed page"),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE, description=f"Page size, at most {MAX_PER_PAGE}"),
) -> PaginationParams:
    """
    FastAPI dependency, e.g. for the customer list:

        def list_customers(pagination: PaginationParams = Depends(get_pagination)): ...
    """
    return PaginationParams(page=page, per_page=per_page)


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams) -> tuple[list, int]:
    """Return (rows for the requested page, total row count). Ordering is dropped for the count."""
    total = query.order_by(None).count()
    rows = query.offset(pagination.offset).limit(pagination.per_page).all()
    return rows, total


def page_envelope(items: list, total: int, pagination: PaginationParams) -> dict:
    """Response body: {items, total, page, per_page, pages}."""
    return {
        "items": items,
        "total": total,
        "page": pagination.page,
        "per_page": pagination.per_page,
        "pages": pagination.pages_for(total),
    }
