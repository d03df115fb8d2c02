"""Google Cloud Firestore access for the game catalog and its reviews.

One-shot reads and the review transaction use the async Firestore client so
they do not block the event loop. Live listeners need ``on_snapshot``, which
only the sync client offers; that client is created lazily on first use.
Collection names are configurable via ``GAMES_COLLECTION`` and
``RATINGS_COLLECTION``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from google.cloud import firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, AsyncClient
from google.cloud.firestore_v1.async_transaction import async_transactional
from pydantic import BaseModel

from app.config import settings
from app.models.schemas import Game, GameFilters, RatingAggregate, Review, ReviewRequest
from app.services.queries import apply_query_filters, reviews_query
from app.services.subscriptions import Subscription

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _to_datetime(value: Any) -> Any:
    """Normalize Firestore's timestamp types into a plain UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        return datetime(
            value.year, value.month, value.day,
            value.hour, value.minute, value.second, value.microsecond,
            tzinfo=timezone.utc,
        )
    to_datetime = getattr(value, "ToDatetime", None)
    if to_datetime is not None:
        return to_datetime(tzinfo=timezone.utc)
    return value


def project(snapshot, model: type[ModelT]) -> ModelT:
    """Turn a document snapshot into a display model with its id attached."""
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    data["timestamp"] = _to_datetime(data.get("timestamp"))
    return model.model_validate(data)


def apply_rating(current: dict[str, Any], rating: int | float) -> RatingAggregate:
    """Fold one rating into a game's stored aggregate."""
    num_ratings = (current.get("numRatings") or 0) + 1
    sum_rating = (current.get("sumRating") or 0) + rating
    return RatingAggregate(
        num_ratings=num_ratings,
        sum_rating=sum_rating,
        avg_rating=sum_rating / num_ratings,
    )


async def _update_with_rating(transaction, game_ref, review_ref, review: ReviewRequest) -> RatingAggregate:
    snapshot = await game_ref.get(transaction=transaction)
    if not snapshot.exists:
        raise GameNotFoundError(game_ref.id)

    aggregate = apply_rating(snapshot.to_dict() or {}, review.rating)
    transaction.update(game_ref, aggregate.model_dump(by_alias=True))
    transaction.set(
        review_ref,
        {**review.model_dump(by_alias=True), "timestamp": SERVER_TIMESTAMP},
    )
    return aggregate


async def _add_review_transaction(transaction, game_ref, review_ref, review: ReviewRequest) -> RatingAggregate:
    # Retries on contention, so concurrent reviews of one game serialize.
    # The wrapper remembers its transaction id, so each call gets its own.
    run = async_transactional(_update_with_rating)
    return await run(transaction, game_ref, review_ref, review)


class FirestoreService:
    """Async Firestore client for catalog reads, reviews and live listeners."""

    def __init__(
        self,
        db: AsyncClient | None = None,
        listener_db: firestore.Client | None = None,
    ) -> None:
        self._db = db or AsyncClient(
            project=settings.gcp_project_id or None,
            database=settings.firestore_database,
        )
        self._listener_db = listener_db
        self._games = settings.games_collection
        self._ratings = settings.ratings_collection

    @property
    def listener_db(self) -> firestore.Client:
        if self._listener_db is None:
            self._listener_db = firestore.Client(
                project=settings.gcp_project_id or None,
                database=settings.firestore_database,
            )
            logger.info("Initialized Firestore listener client")
        return self._listener_db

    def _game_ref(self, game_id: str):
        return self._db.collection(self._games).document(game_id)

    # ------------------------------------------------------------------
    # One-shot reads
    # ------------------------------------------------------------------

    async def _fetch(self, query, model: type[ModelT]) -> list[ModelT]:
        return [project(doc, model) async for doc in query.stream()]

    async def get_games(self, filters: GameFilters | None = None) -> list[Game]:
        """Return the catalog matching *filters*, in the requested order."""
        query = apply_query_filters(self._db.collection(self._games), filters or GameFilters())
        return await self._fetch(query, Game)

    async def get_game_by_id(self, game_id: str) -> Game | None:
        if not game_id:
            logger.warning("Invalid game id received: %r", game_id)
            return None
        snapshot = await self._game_ref(game_id).get()
        if not snapshot.exists:
            return None
        return project(snapshot, Game)

    async def get_reviews_by_game_id(self, game_id: str) -> list[Review]:
        if not game_id:
            logger.warning("Invalid game id received: %r", game_id)
            return []
        query = reviews_query(self._game_ref(game_id).collection(self._ratings))
        return await self._fetch(query, Review)

    # ------------------------------------------------------------------
    # Live listeners
    # ------------------------------------------------------------------

    @staticmethod
    def _listen(query, model: type[ModelT], callback: Callable, description: str) -> Subscription:
        def on_snapshot(docs, changes, read_time) -> None:
            callback([project(doc, model) for doc in docs])

        logger.info("Subscribed listener %s", description)
        return Subscription(query.on_snapshot(on_snapshot), description)

    def subscribe_games(
        self, callback: Callable[[list[Game]], None], filters: GameFilters | None = None
    ) -> Subscription | None:
        """Invoke *callback* with the full filtered catalog on every change."""
        if not callable(callback):
            logger.error("The callback parameter is not callable")
            return None
        query = apply_query_filters(self.listener_db.collection(self._games), filters or GameFilters())
        return self._listen(query, Game, callback, f"games {filters!r}")

    def subscribe_reviews(
        self, game_id: str, callback: Callable[[list[Review]], None]
    ) -> Subscription | None:
        """Invoke *callback* with every review of *game_id* on each change."""
        if not callable(callback):
            logger.error("The callback parameter is not callable")
            return None
        if not game_id:
            logger.warning("Invalid game id received: %r", game_id)
            return None
        collection = (
            self.listener_db.collection(self._games).document(game_id).collection(self._ratings)
        )
        return self._listen(reviews_query(collection), Review, callback, f"reviews of {game_id}")

    def subscribe_game(
        self, game_id: str, callback: Callable[[Game | None], None]
    ) -> Subscription | None:
        """Invoke *callback* with the game whenever its document changes.

        The callback receives ``None`` if the document is missing.
        """
        if not callable(callback):
            logger.error("The callback parameter is not callable")
            return None
        if not game_id:
            logger.warning("Invalid game id received: %r", game_id)
            return None

        def on_snapshot(docs, changes, read_time) -> None:
            snapshot = docs[0] if docs else None
            if snapshot is None or not snapshot.exists:
                callback(None)
            else:
                callback(project(snapshot, Game))

        doc_ref = self.listener_db.collection(self._games).document(game_id)
        logger.info("Subscribed listener game %s", game_id)
        return Subscription(doc_ref.on_snapshot(on_snapshot), f"game {game_id}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_review_to_game(self, game_id: str, review: ReviewRequest | None) -> RatingAggregate:
        """Store *review* and fold its rating into the game's aggregate atomically."""
        if not game_id:
            raise InvalidInputError("No game ID has been provided.")
        if review is None:
            raise InvalidInputError("A valid review has not been provided.")

        game_ref = self._game_ref(game_id)
        review_ref = game_ref.collection(self._ratings).document()
        try:
            aggregate = await _add_review_transaction(
                self._db.transaction(), game_ref, review_ref, review
            )
        except Exception:
            logger.exception(
                "There was an error adding the rating to the game", extra={"game_id": game_id}
            )
            raise
        logger.info(
            "Added review %s (rating=%d, count=%d)",
            review_ref.id,
            review.rating,
            aggregate.num_ratings,
            extra={"game_id": game_id, "user_id": review.user_id},
        )
        return aggregate

    async def update_game_image_reference(self, game_id: str, public_image_url: str) -> None:
        if not game_id:
            raise InvalidInputError("No game ID has been provided.")
        await self._game_ref(game_id).update({"photo": public_image_url})
        logger.info("Updated image for game %s", game_id, extra={"game_id": game_id})

    async def add_fake_games_and_reviews(self, seed: list[dict[str, Any]]) -> int:
        """Write generated games, each with its reviews in one batch."""
        added = 0
        for entry in seed:
            game_ref = self._db.collection(self._games).document()
            batch = self._db.batch()
            batch.set(game_ref, entry["game"])
            for review in entry["reviews"]:
                batch.set(game_ref.collection(self._ratings).document(), review)
            try:
                await batch.commit()
            except Exception:
                logger.exception("Error adding sample game %s", entry["game"].get("name"))
                raise
            added += 1
        logger.info("Added %d sample games", added)
        return added


class InvalidInputError(ValueError):
    """Raised when a required identifier or payload is missing."""


class GameNotFoundError(Exception):
    """Raised when a game document does not exist."""

    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        super().__init__(f"Game not found: {game_id}")
