import pytest

from game_import.config import DIFFICULTY_LEVELS, GAME_TYPE_OPTIONS, PLAY_TIME_OPTIONS
from game_import.importing.normalize import (
    build_game_row,
    clean_title,
    map_complexity_to_difficulty,
    map_minutes_to_play_time,
    normalize_difficulty,
    normalize_players,
    parse_bool,
    parse_int,
    slugify,
    title_from_slug,
)
from game_import.models import CandidateGame


@pytest.mark.parametrize("weight, expected", [
    (1.0, "1 - Light"),
    (1.49, "1 - Light"),
    (1.5, "2 - Medium Light"),
    (2.5, "3 - Medium"),
    (3.5, "4 - Medium Heavy"),
    (4.49, "4 - Medium Heavy"),
    (4.5, "5 - Heavy"),
    (5.0, "5 - Heavy"),
    ("3.86", "4 - Medium Heavy"),
])
def test_complexity_buckets(weight, expected):
    assert map_complexity_to_difficulty(weight) == expected


@pytest.mark.parametrize("weight", [0, -1, None, "", "n/a", float("nan")])
def test_complexity_defaults_when_missing_or_not_positive(weight):
    assert map_complexity_to_difficulty(weight) == "3 - Medium"


@pytest.mark.parametrize("minutes, expected", [
    (10, "0-15 Minutes"),
    (15, "0-15 Minutes"),
    (16, "15-30 Minutes"),
    (45, "30-45 Minutes"),
    (60, "45-60 Minutes"),
    (90, "60+ Minutes"),
    (120, "60+ Minutes"),
    (150, "2+ Hours"),
    (180, "2+ Hours"),
    (181, "3+ Hours"),
    (600, "3+ Hours"),
    ("75 min", "60+ Minutes"),
])
def test_play_time_buckets(minutes, expected):
    assert map_minutes_to_play_time(minutes) == expected


@pytest.mark.parametrize("minutes", [0, -30, None, "", "long"])
def test_play_time_defaults_when_missing_or_not_positive(minutes):
    assert map_minutes_to_play_time(minutes) == "45-60 Minutes"


def test_complexity_mapping_is_monotonic():
    weights = [0.01 * step for step in range(1, 601)]
    indexes = [DIFFICULTY_LEVELS.index(map_complexity_to_difficulty(w)) for w in weights]
    assert indexes == sorted(indexes)


def test_play_time_mapping_is_monotonic():
    minutes = list(range(1, 400))
    indexes = [PLAY_TIME_OPTIONS.index(map_minutes_to_play_time(m)) for m in minutes]
    assert indexes == sorted(indexes)


def test_mappers_never_leave_the_vocabulary():
    samples = [-5, 0, 0.5, 1, 2, 3, 4, 5, 7, 15, 59, 61, 121, 181, 10000, "x", None]
    for value in samples:
        assert map_complexity_to_difficulty(value) in DIFFICULTY_LEVELS
        assert map_minutes_to_play_time(value) in PLAY_TIME_OPTIONS


def test_normalize_difficulty_accepts_labels_and_weights():
    assert normalize_difficulty("5 - heavy") == "5 - Heavy"
    assert normalize_difficulty("2.1") == "2 - Medium Light"
    assert normalize_difficulty("brutal") is None


@pytest.mark.parametrize("value, expected", [
    ("true", True), ("YES", True), ("1", True), ("no", False), ("maybe", False), ("", None), (None, None),
])
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


def test_parse_int_reads_leading_number():
    assert parse_int("3 players") == 3
    assert parse_int("2.9") == 2
    assert parse_int("about 3") is None


def test_players_are_filled_and_ordered():
    assert normalize_players(None, None) == (2, 4)
    assert normalize_players(5, 2) == (2, 5)
    assert normalize_players(1, None) == (1, 4)
    assert normalize_players(6, None) == (6, 6)
    assert normalize_players(None, 1) == (1, 1)
    assert normalize_players(0, -2) == (2, 4)


def test_slugify_and_title_from_slug():
    assert slugify("Brass: Birmingham") == "brass-birmingham"
    assert slugify("Café  Crème!") == "cafe-creme"
    assert title_from_slug("https://boardgamegeek.com/boardgame/224517/brass-birmingham") == "Brass Birmingham"
    assert title_from_slug("https://boardgamegeek.com/boardgame/224517") is None


def test_build_game_row_applies_defaults():
    row = build_game_row(CandidateGame(title="  Wingspan ", min_players=1, max_players=5))

    assert row["title"] == "Wingspan"
    assert row["slug"] == "wingspan"
    assert row["difficulty"] == "3 - Medium"
    assert row["play_time"] == "45-60 Minutes"
    assert row["game_type"] == "Board Game"
    assert (row["min_players"], row["max_players"]) == (1, 5)
    assert row["game_type"] in GAME_TYPE_OPTIONS


def test_build_game_row_drops_illegal_enums_and_sale_fields_when_not_for_sale():
    row = build_game_row(CandidateGame(
        title="Catan",
        difficulty="Impossible",
        game_type="board game",
        sale_price=20.0,
        sale_condition="Like New",
        is_for_sale=False,
    ))
    assert row["difficulty"] == "3 - Medium"
    assert row["game_type"] == "Board Game"
    assert row["sale_price"] is None
    assert row["sale_condition"] is None


def test_build_game_row_keeps_parent_only_for_expansions():
    base = build_game_row(CandidateGame(title="Catan", in_base_game_box=True), parent_game_id="p1")
    expansion = build_game_row(CandidateGame(title="Seafarers", is_expansion=True, in_base_game_box=True),
                               parent_game_id="p1")
    assert base["parent_game_id"] is None
    assert base["in_base_game_box"] is False
    assert expansion["parent_game_id"] == "p1"
    assert expansion["in_base_game_box"] is True


def test_clean_title_trims_and_truncates():
    assert clean_title("  Azul ") == "Azul"
    assert clean_title(None) == ""
    assert clean_title("B" * 600) == "B" * 500


def test_build_game_row_filters_gameplay_images():
    main = "https://cf.geekdo-images.com/a__itemrep/img/1=/pic1.jpg"
    row = build_game_row(CandidateGame(title="Azul", image_url=main, additional_images=[
        main,
        "https://example.com/table.jpg",
        "https://cf.geekdo-images.com/b__imagepage/img/2=/pic2.jpg",
        "https://cf.geekdo-images.com/b__imagepage/img/2=/pic2.jpg",
    ]))
    assert row["image_url"] == main
    assert row["additional_images"] == ["https://cf.geekdo-images.com/b__imagepage/img/2=/pic2.jpg"]
