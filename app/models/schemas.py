"""Pydantic models for request / response validation and serialization.

Field aliases match the camelCase field names stored in Firestore, so the
same models read documents, write documents, and render JSON responses.
External-facing fields are constrained at the boundary before they reach
Firestore or Cloud Storage.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Pattern: only printable characters, no control chars / null bytes.
_SAFE_TEXT_RE = re.compile(r"^[^\x00-\x08\x0b\x0c\x0e-\x1f]*$")

# Options offered by the filter UI. Genre is stored as a free string, so
# these are suggestions rather than an exhaustive enum.
GENRES = (
    "MMORPG",
    "Action-Adventure",
    "RPG",
    "FPS",
    "Puzzle",
    "Platformer",
    "Sandbox",
    "Strategy",
    "Sports",
    "Fighting",
    "Racing",
    "Simulation",
    "Roguelike",
    "Metroidvania",
)

RELEASE_YEARS = (
    1996, 1998, 2001, 2004, 2007, 2010, 2011, 2013,
    2015, 2016, 2017, 2018, 2019, 2020, 2022,
)


class SortKey(str, Enum):
    """Catalog sort orders, both descending."""

    RATING = "Rating"
    REVIEW = "Review"


class GameFilters(BaseModel):
    """Transient filter set rebuilt from the listing query parameters."""

    model_config = ConfigDict(populate_by_name=True)

    genre: str | None = None
    # A non-numeric year is kept as text, which never equals a stored integer
    # year, so the query matches nothing.
    release_year: int | str | None = Field(default=None, alias="releaseYear")
    sort: SortKey = SortKey.RATING

    @field_validator("genre", mode="before")
    @classmethod
    def _blank_genre(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("release_year", mode="before")
    @classmethod
    def _coerce_year(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if isinstance(v, str):
            try:
                return int(v.strip())
            except ValueError:
                return v.strip()
        return v

    @field_validator("sort", mode="before")
    @classmethod
    def _default_sort(cls, v):
        # Anything other than "Review" falls back to rating order.
        if isinstance(v, SortKey):
            return v
        return SortKey.REVIEW if v == SortKey.REVIEW.value else SortKey.RATING


# ---------------------------------------------------------------------------
# Display models — stored fields plus the document id
# ---------------------------------------------------------------------------

class Game(BaseModel):
    """A catalog entry as rendered to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    genre: str = ""
    release_year: int | None = Field(default=None, alias="releaseYear")
    photo: str = ""
    num_ratings: int = Field(default=0, ge=0, alias="numRatings")
    sum_rating: int | float = Field(default=0, alias="sumRating")
    avg_rating: float = Field(default=0, alias="avgRating")
    timestamp: datetime | None = None


class Review(BaseModel):
    """A single rating with its review text."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    rating: int
    text: str = ""
    user_id: str = Field(default="", alias="userId")
    timestamp: datetime | None = None


class RatingAggregate(BaseModel):
    """The running count / sum / average stored on a game document."""

    model_config = ConfigDict(populate_by_name=True)

    num_ratings: int = Field(..., ge=0, alias="numRatings")
    sum_rating: int | float = Field(..., alias="sumRating")
    avg_rating: float = Field(..., alias="avgRating")


# ---------------------------------------------------------------------------
# Request models — validated at the API boundary
# ---------------------------------------------------------------------------

class ReviewRequest(BaseModel):
    """Payload for submitting a star rating with a review."""

    model_config = ConfigDict(populate_by_name=True)

    rating: int = Field(..., ge=1, le=5)
    text: str = Field(default="", max_length=1000)
    user_id: str = Field(..., min_length=1, max_length=128, alias="userId")

    @field_validator("text")
    @classmethod
    def _sanitise_text(cls, v: str) -> str:
        v = v.strip()
        if not _SAFE_TEXT_RE.match(v):
            raise ValueError("Review text contains invalid characters")
        return v

    @field_validator("user_id")
    @classmethod
    def _sanitise_user_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("User id must not be blank")
        if not _SAFE_TEXT_RE.match(v):
            raise ValueError("User id contains invalid characters")
        return v


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class ImageResponse(BaseModel):
    photo: str


class SeedResponse(BaseModel):
    games: int


class FilterOptions(BaseModel):
    genres: list[str]
    release_years: list[int] = Field(alias="releaseYears")
    sorts: list[str]

    model_config = ConfigDict(populate_by_name=True)
