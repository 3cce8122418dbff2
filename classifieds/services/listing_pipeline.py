"""
Ad discovery pipeline.

Turns a ListingFilters instance into ONE parameterized read against the ads
table, runs it, and hands back typed listings.

Rules every query follows:
- the public eligibility predicate is always applied (active, validity window
  open, type allowed on the surface; footer also needs approval and budget)
- set filters are AND-ed; free text and the state code alternation are OR-ed
  internally
- a single sort key decides the order, ties are left to the database
- a failed read is logged and comes back as an empty, failed result

Known gap: requests are not cancelled, so a slow read for an older filter set
can be served after a newer one.
"""
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List

from classifieds.database.connection import get_pool
from classifieds.models.filters import ListingFilters
from classifieds.models.listing import Listing, listing_from_row

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# The sale/rent control ships disabled until the ad_type column is backfilled
AD_TYPE_FILTER_ENABLED = os.getenv("CLASSIFIEDS_AD_TYPE_FILTER", "0") == "1"

FEATURED_LIMIT = 10
FEATURED_PER_SLIDE = 3
SELLER_OTHER_ADS_LIMIT = 4


class AdSurface(str, Enum):
    GRID = "grid"
    FEATURED = "featured"
    FOOTER = "footer"


SURFACE_TYPES = {
    AdSurface.GRID: ["grid", "header"],
    AdSurface.FEATURED: ["header"],
    AdSurface.FOOTER: ["footer"],
}

ORDER_BY = {
    "newest": "a.created_at DESC",
    "price_low": "a.price ASC",
    "price_high": "a.price DESC",
}

BASE_SELECT = """
SELECT
    a.*,
    CASE WHEN c.id IS NULL THEN NULL
         ELSE json_build_object('id', c.id, 'name', c.name, 'icon', c.icon)
    END AS category
FROM ads a
LEFT JOIN categories c ON c.id = a.category_id
"""


def escape_like(text: str) -> str:
    """Make user text literal inside a LIKE pattern"""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def state_code_patterns(code: str) -> List[str]:
    """
    ILIKE patterns that place a state code at a delimited position of a
    free-text location, e.g. 'São Paulo - SP', 'SP - Capital', 'Campinas/SP'.

    A plain substring match would hit 'Espírito Santo' for 'SP'; requiring a
    separator on the open side keeps those out.
    """
    code = escape_like(code.strip().upper())
    return [
        code,
        # suffix
        f"% - {code}",
        f"%-{code}",
        f"%/{code}",
        f"%, {code}",
        f"%,{code}",
        f"% {code}",
        # prefix
        f"{code} - %",
        f"{code}-%",
        f"{code},%",
        f"{code} %",
        # delimited, somewhere in the middle
        f"% - {code} %",
        f"% - {code},%",
        f"%, {code} %",
        f"%({code})%",
    ]


class _Params:
    """Collects positional parameters and hands out $n placeholders"""

    def __init__(self):
        self.values = []

    def add(self, value) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


def build_listing_query(
    filters: ListingFilters,
    surface: AdSurface,
    now: datetime,
    limit: int | None = None,
    ad_type_filter_enabled: bool | None = None,
) -> tuple[str, list]:
    """
    Build the read query for one surface and one filter set.
    Does NOT execute - returns query and values for the caller to execute.
    """
    if ad_type_filter_enabled is None:
        ad_type_filter_enabled = AD_TYPE_FILTER_ENABLED

    params = _Params()
    where = [
        f"a.status = {params.add('active')}",
        f"a.type = ANY({params.add(SURFACE_TYPES[surface])}::text[])",
        f"(a.end_date IS NULL OR a.end_date >= {params.add(now)})",
    ]
    if surface is AdSurface.FOOTER:
        where.append("a.admin_approved = TRUE")
        where.append("a.exposures < a.max_exposures")

    if filters.q:
        placeholder = params.add(f"%{escape_like(filters.q)}%")
        where.append(f"(a.title ILIKE {placeholder} OR a.description ILIKE {placeholder})")

    if filters.category:
        where.append(f"a.category_id::text = {params.add(filters.category)}")

    if filters.seller:
        where.append(f"a.user_id = {params.add(filters.seller)}")

    if filters.ad_type and ad_type_filter_enabled:
        where.append(f"a.ad_type = {params.add(filters.ad_type)}")

    if filters.state:
        where.append(f"a.location ILIKE ANY({params.add(state_code_patterns(filters.state))}::text[])")

    if filters.city:
        where.append(f"a.location ILIKE {params.add(f'%{escape_like(filters.city)}%')}")

    if filters.location:
        where.append(f"a.location ILIKE {params.add(f'%{escape_like(filters.location)}%')}")

    if filters.min_price is not None:
        where.append(f"a.price >= {params.add(filters.min_price)}")

    if filters.max_price is not None:
        where.append(f"a.price <= {params.add(filters.max_price)}")

    query = BASE_SELECT + "WHERE " + "\n  AND ".join(where)
    query += f"\nORDER BY {ORDER_BY[filters.sort]}"
    if limit:
        query += f"\nLIMIT {params.add(limit)}"

    return query, params.values


@dataclass
class ListingSearchResult:
    listings: List[Listing] = field(default_factory=list)
    failed: bool = False

    @property
    def status(self) -> str:
        if self.failed:
            return "error"
        if not self.listings:
            return "no_results"
        return "ok"


async def search_listings(
    filters: ListingFilters,
    surface: AdSurface = AdSurface.GRID,
    limit: int | None = None,
    now: datetime | None = None,
) -> ListingSearchResult:
    """Run the pipeline for one surface. Never raises."""
    now = now or datetime.now(timezone.utc)
    query, values = build_listing_query(filters, surface, now, limit=limit)

    try:
        async with get_pool().acquire() as conn:
            rows = await conn.fetch(query, *values)
        listings = [listing_from_row(row) for row in rows]
    except Exception as e:
        logger.error(
            f"Error fetching {surface.value} ads: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return ListingSearchResult(listings=[], failed=True)

    logger.info(f"{surface.value} search returned {len(listings)} ads")
    return ListingSearchResult(listings=listings)


async def fetch_listing(ad_id: str) -> Listing | None:
    """Single ad by id, whatever its status. Store errors propagate."""
    async with get_pool().acquire() as conn:
        row = await conn.fetchrow(BASE_SELECT + "WHERE a.id::text = $1", ad_id)
    return listing_from_row(row) if row else None


def chunk_slides(items: list, per_slide: int = FEATURED_PER_SLIDE) -> List[list]:
    """[a, b, c, d] -> [[a, b, c], [d]]"""
    return [items[i:i + per_slide] for i in range(0, len(items), per_slide)]
