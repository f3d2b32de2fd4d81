import json

import pytest
from freecell_stats import Stats, load_stats, save_stats, time_str


def test_time_str():
    assert time_str(0) == " 0:00"
    assert time_str(75) == " 1:15"
    assert time_str(3600) == "60:00"


def test_empty_stats():
    stats = Stats()

    assert stats.win_rate() == 0
    assert stats.average_time() == 0


def test_record_games():
    stats = Stats()

    stats.record_game(won=True, play_time=120)
    stats.record_game(won=True, play_time=60)
    stats.record_game(won=False, play_time=500)
    stats.record_game(won=True, play_time=300)

    assert stats.games == 4
    assert stats.won == 3
    assert stats.win_rate() == 75
    assert stats.lowest_time == 60
    assert stats.highest_time == 300
    assert stats.total_time == 480
    assert stats.average_time() == 160
    assert stats.longest_streak == 2
    assert stats.current_streak == 1


def test_clear():
    stats = Stats(games=3, won=1, longest_streak=1)
    stats.clear()

    assert stats == Stats()


def test_save_and_load(tmp_path):
    path = tmp_path / "nested" / "stats.json"
    stats = Stats()
    stats.record_game(won=True, play_time=42)

    save_stats(stats, path)

    assert path.exists()
    assert load_stats(path) == stats


def test_load_missing_file(tmp_path):
    assert load_stats(tmp_path / "missing.json") == Stats()


def test_load_fills_missing_keys(tmp_path):
    path = tmp_path / "stats.json"
    path.write_text(json.dumps({"games": 5, "won": 2, "current_streak": None}))

    stats = load_stats(path)

    assert stats.games == 5
    assert stats.won == 2
    assert stats.current_streak == 0
    assert stats.total_time == 0


def test_load_malformed_file(tmp_path):
    path = tmp_path / "stats.json"

    path.write_text("{not json")
    with pytest.raises(ValueError):
        load_stats(path)

    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_stats(path)

    path.write_text(json.dumps({"games": "many"}))
    with pytest.raises(ValueError):
        load_stats(path)
