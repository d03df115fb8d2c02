"""Sample catalog content for empty databases.

Produces ten well-known games, each with three to eight reviews drawn from a
fixed phrase pool. A game's timestamp always precedes its reviews'
timestamps, and its aggregate fields are computed from the reviews that are
written alongside it.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

TOP_GAMES = (
    {"name": "World of Warcraft", "genre": "MMORPG", "releaseYear": 2004},
    {"name": "The Legend of Zelda: Breath of the Wild", "genre": "Action-Adventure", "releaseYear": 2017},
    {"name": "The Witcher 3: Wild Hunt", "genre": "RPG", "releaseYear": 2015},
    {"name": "Red Dead Redemption 2", "genre": "Action-Adventure", "releaseYear": 2018},
    {"name": "The Last of Us", "genre": "Action-Adventure", "releaseYear": 2013},
    {"name": "Portal 2", "genre": "Puzzle", "releaseYear": 2011},
    {"name": "Half-Life 2", "genre": "FPS", "releaseYear": 2004},
    {"name": "Dark Souls", "genre": "RPG", "releaseYear": 2011},
    {"name": "Super Mario 64", "genre": "Platformer", "releaseYear": 1996},
    {"name": "Minecraft", "genre": "Sandbox", "releaseYear": 2011},
)

REVIEW_POOL = (
    (5, "An absolute masterpiece. I lost whole weekends to this one."),
    (5, "The world feels alive and every corner hides something new."),
    (5, "Still the benchmark everything else gets compared to."),
    (5, "Incredible soundtrack and the story stuck with me for weeks."),
    (4, "Great game with a couple of frustrating difficulty spikes."),
    (4, "Loved the exploration, the side quests are hit and miss."),
    (4, "Controls take a while to click, then it is pure joy."),
    (4, "Beautiful art direction. Performance dips in busy areas."),
    (3, "Solid, but the middle section drags on too long."),
    (3, "Fun with friends, a bit repetitive on your own."),
    (3, "Good ideas that never quite come together for me."),
    (2, "I wanted to like it more. The pacing lost me early."),
    (2, "Too grindy. Felt like a second job by the end."),
    (1, "Could not get past the first few hours, not my thing."),
)

PHOTO_URL = "https://storage.googleapis.com/firestorequickstarts.appspot.com/food_{}.png"


def random_date_before(start: datetime, rng: random.Random) -> datetime:
    return start - timedelta(days=rng.randint(20, 80), seconds=rng.randint(0, 86_399))


def random_date_after(start: datetime, rng: random.Random) -> datetime:
    return start + timedelta(days=rng.randint(1, 19), seconds=rng.randint(0, 86_399))


def generate_fake_games_and_reviews(
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Return ``[{"game": {...}, "reviews": [{...}, ...]}, ...]`` ready to store."""
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    data = []

    for top_game in TOP_GAMES:
        game_timestamp = random_date_before(now, rng)

        reviews = []
        for _ in range(rng.randint(3, 8)):
            rating, text = rng.choice(REVIEW_POOL)
            reviews.append(
                {
                    "rating": rating,
                    "text": text,
                    "userId": f"User #{rng.randint(0, 100)}",
                    "timestamp": random_date_after(game_timestamp, rng),
                }
            )

        sum_rating = sum(review["rating"] for review in reviews)
        game = {
            **top_game,
            "avgRating": sum_rating / len(reviews),
            "numRatings": len(reviews),
            "sumRating": sum_rating,
            "photo": PHOTO_URL.format(rng.randint(1, 22)),
            "timestamp": game_timestamp,
        }
        data.append({"game": game, "reviews": reviews})
    return data
