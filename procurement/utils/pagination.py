from typing import Optional, Any, List, TypeVar, Generic, Sequence
from sqlalchemy import select, func
from pydantic import BaseModel
from procurement.core.logging import logger
from procurement.db.store import LedgerStore

T = TypeVar('T')


class PaginatedResponse(BaseModel, Generic[T]):
    """Response wrapper for paginated results."""

    items: List[T]
    total: int
    page: int
    size: int
    pages: int
    has_next: bool
    has_prev: bool
    next_page: Optional[int] = None
    prev_page: Optional[int] = None

    @classmethod
    def build(cls, items: Sequence[Any], total: int, pagination: "PaginationParams") -> "PaginatedResponse":
        pages = (total + pagination.size - 1) // pagination.size if total else 0
        has_next = pagination.page < pages
        has_prev = pagination.page > 1
        return cls(
            items=list(items),
            total=total,
            page=pagination.page,
            size=pagination.size,
            pages=pages,
            has_next=has_next,
            has_prev=has_prev,
            next_page=pagination.page + 1 if has_next else None,
            prev_page=pagination.page - 1 if has_prev else None,
        )


class PaginationParams:
    """Parameters for pagination."""

    def __init__(
        self,
        page: int = 1,
        size: int = 10,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc"
    ):
        self.page = page
        self.size = size
        self.search = search
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


async def paginate_query(
    store: LedgerStore,
    query: Any,
    pagination: PaginationParams,
    model: Any = None,
    default_order: Optional[Sequence[Any]] = None,
) -> PaginatedResponse[Any]:
    """
    Paginate an ORM select with optional client-chosen sorting.

    Args:
        store: Ledger store bound to the request session
        query: SQLAlchemy select query returning ORM entities
        pagination: Pagination parameters
        model: Model whose attribute ``pagination.sort_by`` names
        default_order: Ordering used when no valid sort field was requested
    """
    if model is not None and pagination.sort_by and hasattr(model, pagination.sort_by):
        sort_col = getattr(model, pagination.sort_by)
        if pagination.sort_order == "desc":
            query = query.order_by(sort_col.desc())
        else:
            query = query.order_by(sort_col.asc())
    else:
        if pagination.sort_by:
            logger.debug(f"Skipping sort: invalid field '{pagination.sort_by}' for model {model}")
        if default_order:
            query = query.order_by(*default_order)

    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await store.execute(count_query, "count page")).scalar() or 0

    result = await store.execute(query.offset(pagination.offset).limit(pagination.size), "page")
    return PaginatedResponse.build(result.scalars().all(), total, pagination)
