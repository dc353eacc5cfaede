"""Page/per_page query parameters shared by the staff list endpoints."""

from dataclasses import dataclass

from fastapi import Query


DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass
class PaginationParams:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page

    def page_fields(self, total: int) -> dict:
        """total/page/per_page/pages for a list response envelope."""
        return dict(
            total=total,
            page=self.page,
            per_page=self.per_page,
            pages=-(-total // self.per_page),
        )


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
) -> PaginationParams:
    return PaginationParams(page=page, per_page=per_page)
