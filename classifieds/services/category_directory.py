"""
Category lookup with two tiers.

1. canonical: the categories table, ordered by name
2. derived: categories embedded in the listings just loaded, deduplicated by id

The derived tier only exists for deployments where the reference table is
still empty. Canonical rows always win when there is at least one; the two are
never merged. Callers get back which tier answered.

The canonical list is kept in process and dropped whenever the database sends
a 'categories_changed' notification.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Literal

import asyncpg  # type: ignore
from async_lru import alru_cache

from classifieds.database.connection import create_listener_connection, get_pool
from classifieds.models.category import Category, category_from_row
from classifieds.models.listing import Listing
from classifieds.models.utils import slugify

logger = logging.getLogger(__name__)

CATEGORY_CHANNEL = "categories_changed"

CategorySource = Literal["canonical", "derived"]


@dataclass
class CategoryLookup:
    categories: List[Category] = field(default_factory=list)
    source: CategorySource = "canonical"


@alru_cache(maxsize=1)
async def fetch_canonical_categories() -> tuple[Category, ...]:
    """Read the categories table. Failures propagate and are not cached."""
    async with get_pool().acquire() as conn:
        rows = await conn.fetch("SELECT * FROM categories ORDER BY name")
    return tuple(category_from_row(row) for row in rows)


def derive_categories(listings: Iterable[Listing]) -> List[Category]:
    """Display-only categories built from the `category` object on each listing"""
    seen = {}
    for listing in listings:
        embedded = listing.category
        category_id = (embedded.id if embedded else None) or listing.category_id
        if embedded is None or not category_id or category_id in seen:
            continue
        seen[category_id] = Category(
            id=category_id,
            name=embedded.name,
            slug=slugify(embedded.name),
            icon=embedded.icon or "",
        )
    return sorted(seen.values(), key=lambda c: c.name.lower())


async def resolve_categories(listings: Iterable[Listing] = ()) -> CategoryLookup:
    """Canonical categories, or the derived ones when the table has no rows"""
    try:
        canonical = list(await fetch_canonical_categories())
    except Exception as e:
        logger.error(f"Error fetching categories: {type(e).__name__}: {str(e)}", exc_info=True)
        canonical = []

    if canonical:
        return CategoryLookup(categories=canonical, source="canonical")

    derived = derive_categories(listings)
    if derived:
        logger.info(f"Category table empty, using {len(derived)} categories derived from ads")
    return CategoryLookup(categories=derived, source="derived")


def invalidate_categories(*_args) -> None:
    """asyncpg listener callback: (connection, pid, channel, payload)"""
    fetch_canonical_categories.cache_clear()
    logger.info("Category list changed, cached copy dropped")


class CategoryChangeListener:
    """LISTEN on the categories channel for the lifetime of the app"""

    def __init__(self, channel: str = CATEGORY_CHANNEL):
        self.channel = channel
        self._conn: asyncpg.Connection | None = None

    async def start(self) -> None:
        try:
            self._conn = await create_listener_connection()
            await self._conn.add_listener(self.channel, invalidate_categories)
            logger.info(f"Listening for '{self.channel}' notifications")
        except Exception as e:
            # Without the listener the list only refreshes on restart
            logger.error(f"Could not subscribe to '{self.channel}': {e}", exc_info=True)
            self._conn = None

    async def stop(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.remove_listener(self.channel, invalidate_categories)
        finally:
            await self._conn.close()
            self._conn = None
