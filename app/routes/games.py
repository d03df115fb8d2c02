"""Catalog API routes: listing, details, reviews, images and live streams.

Each endpoint validates input via Pydantic schemas, delegates to the
Firestore / Cloud Storage services, and returns JSON using the stored
camelCase field names. The ``/stream`` endpoints are server-sent event
streams that push the full current result set on every change.
Disabled features respond with HTTP 503.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import StreamingResponse

from app.config import settings
from app.dependencies import get_firestore_service, get_image_service
from app.models.schemas import (
    GENRES,
    RELEASE_YEARS,
    FilterOptions,
    Game,
    GameFilters,
    ImageResponse,
    RatingAggregate,
    Review,
    ReviewRequest,
    SeedResponse,
    SortKey,
)
from app.services.firestore_service import FirestoreService, GameNotFoundError, InvalidInputError
from app.services.image_service import ImageService, ImageUpdateError
from app.services.seed_data import generate_fake_games_and_reviews
from app.services.subscriptions import SnapshotStream

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["games"])


def get_filters(
    genre: str | None = None,
    release_year: str | None = Query(default=None, alias="releaseYear"),
    sort: str | None = None,
) -> GameFilters:
    """Build the filter set from ``?genre=&releaseYear=&sort=``.

    Unrecognized values are not errors; they just match no games.
    """
    return GameFilters(genre=genre, release_year=release_year, sort=sort)


async def _event_stream(request: Request, stream: SnapshotStream) -> AsyncIterator[str]:
    async with stream:
        while not await request.is_disconnected():
            try:
                results = await asyncio.wait_for(
                    stream.get(), timeout=settings.stream_heartbeat_seconds
                )
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"data: {json.dumps(jsonable_encoder(results))}\n\n"


def _sse(request: Request, stream: SnapshotStream) -> StreamingResponse:
    return StreamingResponse(
        _event_stream(request, stream),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/filters", response_model=FilterOptions)
async def filter_options() -> FilterOptions:
    """Options shown by the catalog filter menu."""
    return FilterOptions(
        genres=list(GENRES),
        release_years=list(RELEASE_YEARS),
        sorts=[key.value for key in SortKey],
    )


@router.get("/games", response_model=list[Game])
async def list_games(
    filters: GameFilters = Depends(get_filters),
    db: FirestoreService = Depends(get_firestore_service),
) -> list[Game]:
    """List games, optionally filtered by genre / release year and sorted."""
    try:
        return await db.get_games(filters)
    except Exception as e:
        logger.error("Failed to list games: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list games")


@router.get("/games/stream")
async def stream_games(
    request: Request,
    filters: GameFilters = Depends(get_filters),
    db: FirestoreService = Depends(get_firestore_service),
) -> StreamingResponse:
    """Push the filtered catalog whenever it changes."""
    return _sse(request, SnapshotStream(lambda cb: db.subscribe_games(cb, filters)))


@router.post("/games/seed", response_model=SeedResponse, status_code=201)
async def seed_games(db: FirestoreService = Depends(get_firestore_service)) -> SeedResponse:
    """Add the sample games and their reviews."""
    if not settings.allow_seeding:
        raise HTTPException(status_code=503, detail="Sample data seeding is not enabled")
    try:
        added = await db.add_fake_games_and_reviews(generate_fake_games_and_reviews())
    except Exception as e:
        logger.error("Seeding failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to add sample games")
    return SeedResponse(games=added)


@router.get("/games/{game_id}", response_model=Game)
async def get_game(
    game_id: str,
    db: FirestoreService = Depends(get_firestore_service),
) -> Game:
    """Retrieve a single game."""
    game = await db.get_game_by_id(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


@router.get("/games/{game_id}/stream")
async def stream_game(
    game_id: str,
    request: Request,
    db: FirestoreService = Depends(get_firestore_service),
) -> StreamingResponse:
    """Push the game whenever its document changes (``null`` once missing)."""
    return _sse(request, SnapshotStream(lambda cb: db.subscribe_game(game_id, cb)))


@router.get("/games/{game_id}/reviews", response_model=list[Review])
async def list_reviews(
    game_id: str,
    db: FirestoreService = Depends(get_firestore_service),
) -> list[Review]:
    """Reviews of a game, newest first."""
    try:
        return await db.get_reviews_by_game_id(game_id)
    except Exception as e:
        logger.error("Failed to list reviews: %s", e, extra={"game_id": game_id})
        raise HTTPException(status_code=500, detail="Failed to list reviews")


@router.get("/games/{game_id}/reviews/stream")
async def stream_reviews(
    game_id: str,
    request: Request,
    db: FirestoreService = Depends(get_firestore_service),
) -> StreamingResponse:
    """Push the game's reviews whenever one is added."""
    return _sse(request, SnapshotStream(lambda cb: db.subscribe_reviews(game_id, cb)))


@router.post("/games/{game_id}/reviews", response_model=RatingAggregate, status_code=201)
async def add_review(
    game_id: str,
    review: ReviewRequest,
    db: FirestoreService = Depends(get_firestore_service),
) -> RatingAggregate:
    """Store a review and return the game's updated rating aggregate."""
    try:
        return await db.add_review_to_game(game_id, review)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")
    except Exception as e:
        logger.error("Failed to add review: %s", e, extra={"game_id": game_id})
        raise HTTPException(status_code=500, detail="Failed to add review")


@router.post("/games/{game_id}/image", response_model=ImageResponse)
async def update_image(
    game_id: str,
    image: UploadFile = File(...),
    images: ImageService | None = Depends(get_image_service),
) -> ImageResponse:
    """Replace the game's image with the uploaded file."""
    if images is None:
        raise HTTPException(status_code=503, detail="Image uploads are not enabled")
    data = await image.read(settings.max_image_bytes + 1)
    if len(data) > settings.max_image_bytes:
        raise HTTPException(status_code=413, detail="Image is too large")
    try:
        url = await images.update_game_image(game_id, image.filename, data, image.content_type)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GameNotFoundError:
        raise HTTPException(status_code=404, detail="Game not found")
    except ImageUpdateError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return ImageResponse(photo=url)
