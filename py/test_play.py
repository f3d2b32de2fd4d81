import pytest
from freecell import KING, Color, Move, Reference
from freecell_cli import Command, CommandKind, format_board, format_move, parse_command, run
from freecell_session import GameSession, Locate, Match
from freecell_stats import Stats, load_stats, save_stats


def scripted(*lines: str):
    inputs = iter(lines)
    prompts: list[str] = []

    def input_fn(prompt: str) -> str:
        prompts.append(prompt)
        return next(inputs)

    return input_fn, prompts


def test_parse_command():
    assert parse_command("a t") == [
        Command(CommandKind.SELECT, Reference.tableau(0)),
        Command(CommandKind.SELECT, Reference.foundation()),
    ]
    assert parse_command("K r2") == [
        Command(CommandKind.SELECT, Reference.tableau(7)),
        Command(CommandKind.SELECT, Reference.reserve(1)),
    ]
    assert parse_command("u redo x") == [
        Command(CommandKind.UNDO),
        Command(CommandKind.REDO),
        Command(CommandKind.CANCEL),
    ]
    assert parse_command("p clear-stats") == [
        Command(CommandKind.PAUSE),
        Command(CommandKind.CLEAR_STATS),
    ]
    assert parse_command("") == []


def test_parse_locate_command():
    assert parse_command("a l r 5") == [
        Command(CommandKind.SELECT, Reference.tableau(0)),
        Command(CommandKind.LOCATE, query=Locate(Color.RED, Match.RANK, 5)),
    ]
    assert parse_command("l b l") == [Command(CommandKind.LOCATE, query=Locate(Color.BLACK, Match.LOW))]
    assert parse_command("l 0") == [Command(CommandKind.LOCATE, query=Locate(match=Match.RANK, rank=10))]
    assert parse_command("L K") == [Command(CommandKind.LOCATE, query=Locate(match=Match.RANK, rank=KING))]
    # A bare l clears the query
    assert parse_command("l") == [Command(CommandKind.LOCATE)]


def test_parse_command_rejects_unknown_tokens():
    with pytest.raises(ValueError):
        parse_command("a z")
    with pytest.raises(ValueError):
        parse_command("r")
    with pytest.raises(ValueError):
        parse_command("l r z")


def test_format_move():
    assert format_move(Move(Reference.reserve(0), Reference.foundation())) == "r1 t"
    assert format_move(Move(Reference.tableau(1), Reference.tableau(7), 3)) == "s k (3 cards)"


def test_format_board(unshuffled_rng):
    session = GameSession(rng=unshuffled_rng)
    session.select(Reference.tableau(0))

    text = format_board(session.render())

    assert "10♠" in text
    assert "selected: A" in text
    assert "*" not in text
    assert text.count("\n") >= 9


def test_format_board_marks_located_cards(unshuffled_rng, make_board):
    session = GameSession(rng=unshuffled_rng)
    session.board = make_board([["Kc", "5h"], ["5s"]], foundation=["Ac"])

    session.set_locate(Locate(Color.RED, Match.RANK, 5))
    text = format_board(session.render())

    assert " *5♥" in text
    assert "*5♠" not in text
    assert "locate: R 5" in text

    session.set_locate(Locate(match=Match.RANK, rank=1))
    text = format_board(session.render())

    assert " *A♣" in text
    assert "locate: * A" in text


def test_run_plays_until_quit(unshuffled_rng, tmp_path):
    session = GameSession(rng=unshuffled_rng)
    stats_path = tmp_path / "stats.json"
    input_fn, prompts = scripted("k k", "bogus", "hint", "q", "y")
    output: list[str] = []

    run(session, stats_path, input_fn=input_fn, output=output.append)

    assert session.move_count == 1
    # The ace uncovered by the move is swept to the foundation
    assert session.board.foundation[3] is not None
    assert any("Unknown command" in line for line in output)
    # The hint is spelled in the keys the player types
    assert "Try a r2" in output
    assert prompts[-1] == "Quit game? (y/n) "
    assert load_stats(stats_path).games == 1


def test_run_stops_on_end_of_input(unshuffled_rng):
    session = GameSession(rng=unshuffled_rng)

    def no_input(_):
        raise EOFError

    run(session, None, input_fn=no_input, output=lambda _: None)

    assert session.move_count == 0


def test_declined_quit_keeps_playing(unshuffled_rng):
    session = GameSession(rng=unshuffled_rng)
    input_fn, prompts = scripted("q", "n", "k k", "q", "y")

    run(session, None, input_fn=input_fn, output=lambda _: None)

    assert session.move_count == 1
    assert prompts.count("Quit game? (y/n) ") == 2


def test_new_game_asks_first(unshuffled_rng, tmp_path):
    session = GameSession(rng=unshuffled_rng)
    stats_path = tmp_path / "stats.json"
    input_fn, prompts = scripted("k k", "n", "n", "n", "y", "q", "y")

    run(session, stats_path, input_fn=input_fn, output=lambda _: None)

    assert prompts.count("Start a new game? (y/n) ") == 2
    assert session.move_count == 0
    assert load_stats(stats_path).games == 1


def test_run_pause_and_resume(unshuffled_rng):
    session = GameSession(rng=unshuffled_rng)
    input_fn, _ = scripted("p", "a", "hint", "p", "a a", "q", "y")
    output: list[str] = []

    run(session, None, input_fn=input_fn, output=output.append)

    assert "Paused (p to resume)" in output
    assert output.count("Game is paused") == 3
    assert session.move_count == 1


def test_run_locate_then_cancel(unshuffled_rng):
    session = GameSession(rng=unshuffled_rng)
    input_fn, _ = scripted("l b 10", "x", "q", "y")
    output: list[str] = []

    run(session, None, input_fn=input_fn, output=output.append)

    assert "*10♠" in output[1]
    assert "locate: B 10" in output[1]
    assert "*" not in output[2]
    assert session.locate_query is None


def test_clear_stats(unshuffled_rng, tmp_path):
    stats_path = tmp_path / "stats.json"
    save_stats(Stats(games=3, won=1, longest_streak=1), stats_path)
    session = GameSession(rng=unshuffled_rng, stats=load_stats(stats_path))
    input_fn, _ = scripted("clear-stats", "n", "clear-stats", "y", "q", "y")
    output: list[str] = []

    run(session, stats_path, input_fn=input_fn, output=output.append)

    assert output.count("Stats cleared") == 1
    assert session.stats == Stats()
    assert load_stats(stats_path) == Stats()
