# Overview: page/page_size query parsing shared by list routes.

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def meta(self, total: int) -> dict:
        return {"page": self.page, "page_size": self.page_size, "total": total}


def _as_int(raw, default: int) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def parse_pagination(args) -> Page:
    """Clamp page to >= 1 and page_size to 1..100; junk falls back to defaults."""
    page = max(1, _as_int(args.get("page"), 1))
    page_size = _as_int(args.get("page_size"), DEFAULT_PAGE_SIZE)
    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    return Page(page=page, page_size=page_size)


def paginate(query, page: Page) -> tuple[list, int]:
    total = query.order_by(None).count()
    rows = query.offset(page.offset).limit(page.page_size).all()
    return rows, total
