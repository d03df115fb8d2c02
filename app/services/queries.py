"""Firestore query composition for the game catalog.

Works on any Firestore collection or query object, async or sync, since both
expose the same ``where`` / ``order_by`` builders. Listeners use the sync
client, one-shot reads use the async client.
"""

from google.cloud.firestore_v1 import Query
from google.cloud.firestore_v1.base_query import FieldFilter

from app.models.schemas import GameFilters, SortKey

SORT_FIELDS = {
    SortKey.RATING: "avgRating",
    SortKey.REVIEW: "numRatings",
}


def apply_query_filters(query, filters: GameFilters):
    """Add the genre / release-year equality filters and the sort order.

    Exactly one sort order is applied. Ties fall back to Firestore's own
    ordering.
    """
    if filters.genre:
        query = query.where(filter=FieldFilter("genre", "==", filters.genre))
    if filters.release_year is not None:
        query = query.where(filter=FieldFilter("releaseYear", "==", filters.release_year))
    return query.order_by(SORT_FIELDS[filters.sort], direction=Query.DESCENDING)


def reviews_query(collection):
    """Newest reviews first."""
    return collection.order_by("timestamp", direction=Query.DESCENDING)
