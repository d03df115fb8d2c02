from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from app.models.schemas import (
    FilterOptions, Game, GameFilters, RatingAggregate, Review, ReviewRequest, SortKey,
)


class TestGameFilters:
    def test_defaults(self):
        f = GameFilters()
        assert f.genre is None
        assert f.release_year is None
        assert f.sort == SortKey.RATING

    def test_blank_values_mean_no_filter(self):
        f = GameFilters(genre="", releaseYear="", sort="")
        assert f.genre is None
        assert f.release_year is None
        assert f.sort == SortKey.RATING

    def test_release_year_coerced_to_int(self):
        assert GameFilters(releaseYear="2011").release_year == 2011
        assert GameFilters(release_year=" 1996 ").release_year == 1996

    def test_non_numeric_year_kept_as_text(self):
        assert GameFilters(releaseYear=" last year ").release_year == "last year"

    def test_review_sort(self):
        assert GameFilters(sort="Review").sort == SortKey.REVIEW

    @pytest.mark.parametrize("value", [None, "Rating", "rating", "Popularity"])
    def test_other_sorts_fall_back_to_rating(self, value):
        assert GameFilters(sort=value).sort == SortKey.RATING

    def test_genre_stripped(self):
        assert GameFilters(genre="  RPG ").genre == "RPG"


class TestGame:
    def test_reads_stored_field_names(self):
        game = Game.model_validate(
            {"id": "g1", "name": "Minecraft", "releaseYear": 2011, "numRatings": 3,
             "sumRating": 12, "avgRating": 4.0}
        )
        assert game.release_year == 2011
        assert game.num_ratings == 3
        assert game.avg_rating == 4.0

    def test_dumps_stored_field_names(self):
        game = Game(id="g1", name="Minecraft", release_year=2011)
        dumped = game.model_dump(by_alias=True)
        assert dumped["releaseYear"] == 2011
        assert "numRatings" in dumped and "avgRating" in dumped

    def test_integer_sum_round_trips_as_integer(self):
        game = Game.model_validate({"id": "g1", "numRatings": 2, "sumRating": 9, "avgRating": 4.5})
        assert type(game.model_dump(by_alias=True)["sumRating"]) is int

    def test_unrated_game_defaults(self):
        game = Game(id="g1")
        assert game.num_ratings == 0
        assert game.sum_rating == 0
        assert game.timestamp is None


class TestReview:
    def test_reads_user_id(self):
        when = datetime(2024, 5, 1, tzinfo=timezone.utc)
        review = Review.model_validate(
            {"id": "r1", "rating": 5, "text": "Great", "userId": "User #7", "timestamp": when}
        )
        assert review.user_id == "User #7"
        assert review.timestamp == when


class TestReviewRequest:
    def test_valid_request(self):
        req = ReviewRequest(rating=4, text="Fun with friends", userId="u1")
        assert req.rating == 4
        assert req.model_dump(by_alias=True) == {"rating": 4, "text": "Fun with friends", "userId": "u1"}

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_rating_out_of_range_raises_error(self, rating):
        with pytest.raises(ValidationError):
            ReviewRequest(rating=rating, text="x", userId="u1")

    def test_missing_user_raises_error(self):
        with pytest.raises(ValidationError):
            ReviewRequest(rating=3, text="x")

    def test_blank_user_raises_error(self):
        with pytest.raises(ValidationError):
            ReviewRequest(rating=3, text="x", userId="   ")

    def test_text_stripped(self):
        assert ReviewRequest(rating=3, text="  solid  ", userId="u1").text == "solid"

    def test_text_too_long_raises_error(self):
        with pytest.raises(ValidationError):
            ReviewRequest(rating=3, text="A" * 1001, userId="u1")

    def test_control_chars_rejected(self):
        with pytest.raises(ValidationError):
            ReviewRequest(rating=3, text="hello\x00world", userId="u1")

    def test_text_optional(self):
        assert ReviewRequest(rating=5, userId="u1").text == ""


class TestResponses:
    def test_rating_aggregate_aliases(self):
        agg = RatingAggregate(num_ratings=3, sum_rating=13, avg_rating=13 / 3)
        assert agg.model_dump(by_alias=True)["numRatings"] == 3

    def test_filter_options_aliases(self):
        opts = FilterOptions(genres=["RPG"], release_years=[2011], sorts=["Rating", "Review"])
        assert opts.model_dump(by_alias=True)["releaseYears"] == [2011]
