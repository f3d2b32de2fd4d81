import argparse
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from freecell import ACE, JACK, KING, QUEEN, RANK_LABELS, TABLEAU_SLOTS, Color, Move, Reference, Zone
from freecell_session import GameSession, Locate, Match, Outcome, Render, SessionState
from freecell_stats import DEFAULT_STATS_PATH, Stats, load_stats, save_stats, time_str

logger = logging.getLogger(__name__)

SLOT_NAMES = "asdfghjk"

HELP_TEXT = """\
a s d f g h j k   Reference a tableau column
r1 r2 r3 r4       Reference a reserve slot
t                 Reference the foundation
x                 Cancel the selected source and the locate query
u / redo          Undo or redo a move
l ...             Highlight cards: b or r for a color, then a 2-9 0 j q k
                  for a rank or l for cards that can go on the foundation
                  (e.g. "l r 5"); a bare l clears the highlight
hint              Suggest a legal move
p                 Pause or resume the game
stats             Show game stats
clear-stats       Clear game stats
n                 Start a new game
q                 Quit

To move a card, reference the source slot, then the destination slot
(several references may be given on one line, e.g. "a t" or "s r1").
Referencing a tableau column twice moves its top card to the reserve."""


class CommandKind(str, Enum):
    SELECT = "SELECT"
    CANCEL = "CANCEL"
    UNDO = "UNDO"
    REDO = "REDO"
    LOCATE = "LOCATE"
    HINT = "HINT"
    PAUSE = "PAUSE"
    HELP = "HELP"
    STATS = "STATS"
    CLEAR_STATS = "CLEAR_STATS"
    NEW_GAME = "NEW_GAME"
    QUIT = "QUIT"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    ref: Reference | None = None
    query: Locate | None = None


KEYWORDS = {
    "x": CommandKind.CANCEL,
    "u": CommandKind.UNDO,
    "redo": CommandKind.REDO,
    "hint": CommandKind.HINT,
    "p": CommandKind.PAUSE,
    "?": CommandKind.HELP,
    "stats": CommandKind.STATS,
    "clear-stats": CommandKind.CLEAR_STATS,
    "n": CommandKind.NEW_GAME,
    "q": CommandKind.QUIT,
}

LOCATE_RANKS = {"a": ACE, "0": 10, "10": 10, "j": JACK, "q": QUEEN, "k": KING}


def parse_token(token: str) -> Command:
    token = token.lower()
    if token in KEYWORDS:
        return Command(KEYWORDS[token])
    if token == "t":
        return Command(CommandKind.SELECT, Reference.foundation())
    if len(token) == 1 and token in SLOT_NAMES:
        return Command(CommandKind.SELECT, Reference.tableau(SLOT_NAMES.index(token)))
    if len(token) == 2 and token[0] == "r" and token[1].isdigit():  # noqa: PLR2004
        return Command(CommandKind.SELECT, Reference.reserve(int(token[1]) - 1))

    msg = f"Unknown command {token!r}"
    raise ValueError(msg)


def parse_locate(tokens: list[str]) -> Locate | None:
    """Builds a locate query from the words after ``l``; no words clears it."""
    if not tokens:
        return None

    color = None
    match = Match.NOTHING
    rank = 0
    for word in tokens:
        token = word.lower()
        if token == "b":
            color = Color.BLACK
        elif token == "r":
            color = Color.RED
        elif token in ("l", "low"):
            match, rank = Match.LOW, 0
        elif token in LOCATE_RANKS:
            match, rank = Match.RANK, LOCATE_RANKS[token]
        elif len(token) == 1 and "2" <= token <= "9":
            match, rank = Match.RANK, int(token)
        else:
            msg = f"Unknown locate option {token!r}"
            raise ValueError(msg)
    return Locate(color, match, rank)


def parse_command(text: str) -> list[Command]:
    tokens = text.split()
    commands = []
    for pos, token in enumerate(tokens):
        if token.lower() == "l":
            # The rest of the line belongs to the locate query
            commands.append(Command(CommandKind.LOCATE, query=parse_locate(tokens[pos + 1 :])))
            break
        commands.append(parse_token(token))
    return commands


def format_slot(ref: Reference) -> str:
    if ref.zone == Zone.TABLEAU:
        return SLOT_NAMES[ref.index].upper()
    if ref.zone == Zone.RESERVE:
        return f"R{ref.index + 1}"
    return "T"


def format_move(move: Move) -> str:
    """Spells a move the way the player would type it."""
    text = f"{format_slot(move.source)} {format_slot(move.destination)}".lower()
    if move.count > 1:
        text += f" ({move.count} cards)"
    return text


def format_locate(query: Locate) -> str:
    color = {Color.BLACK: "B", Color.RED: "R", None: "*"}[query.color]
    if query.match == Match.LOW:
        what = "LO"
    elif query.match == Match.RANK:
        what = RANK_LABELS.get(query.rank, str(query.rank))
    else:
        what = "?"
    return f"{color} {what}"


def format_board(render: Render) -> str:
    def cell(card) -> str:
        if card is None:
            return "  __"
        text = f"*{card}" if card in render.highlighted else str(card)
        return f"{text:>4}"

    lines = [
        "R [" + " ".join(cell(card) for card in render.reserve) + " ]"
        + "  [" + " ".join(cell(card) for card in render.foundation) + " ] T"
        + f"   {time_str(render.play_time)}",
        "",
        "  " + "     ".join(name.upper() for name in SLOT_NAMES),
    ]
    depth = max((len(tableau) for tableau in render.tableaus), default=0)
    for row in range(depth):
        lines.append(
            " ".join(
                cell(tableau[row]) if row < len(tableau) else "    "
                for tableau in render.tableaus
            ).rstrip()
        )

    status = f"moves: {render.move_count}"
    if render.pending is not None:
        status += f"  selected: {format_slot(render.pending)}"
    if render.locate is not None:
        status += f"  locate: {format_locate(render.locate)}"
    lines.extend(["", status])
    return "\n".join(lines)


def format_stats(stats: Stats) -> str:
    return "\n".join(
        [
            f"Games played:   {stats.games:>5}",
            f"Games won:      {stats.won:>5}",
            f"Win rate:       {stats.win_rate():>4}%",
            f"Longest streak: {stats.longest_streak:>5}",
            f"Current streak: {stats.current_streak:>5}",
            f"Average time:   {time_str(stats.average_time()):>5}",
            f"Lowest time:    {time_str(stats.lowest_time):>5}",
            f"Highest time:   {time_str(stats.highest_time):>5}",
        ]
    )


def settle(session: GameSession) -> None:
    while session.tick():
        pass


def write_stats(stats: Stats, stats_path: Path | None) -> str:
    if stats_path is None:
        return ""
    try:
        save_stats(stats, stats_path)
    except OSError as e:
        logger.warning("Failed to save stats: %s", e)
        return f"Failed to save stats: {e}"
    return ""


def persist(session: GameSession, stats_path: Path | None) -> str:
    if not session.end_game():
        return ""
    return write_stats(session.stats, stats_path)


def confirm(prompt: str, input_fn: Callable[[str], str]) -> bool:
    try:
        answer = input_fn(f"{prompt} (y/n) ")
    except EOFError:
        return False
    return answer.strip().lower() == "y"


def run(
    session: GameSession,
    stats_path: Path | None = None,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> None:
    while True:
        settle(session)
        if session.state == SessionState.PAUSED:
            output("Paused (p to resume)")
        else:
            output(format_board(session.render()))
        if session.state == SessionState.WON:
            output("You won! (n for a new game, q to quit)")

        try:
            line = input_fn("> ")
        except EOFError:
            message = persist(session, stats_path)
            if message:
                output(message)
            return

        try:
            commands = parse_command(line)
        except ValueError as e:
            output(str(e))
            continue

        for command in commands:
            message = ""
            if command.kind == CommandKind.SELECT:
                assert command.ref is not None  # noqa: S101
                message = session.select(command.ref).message
            elif command.kind == CommandKind.CANCEL:
                session.cancel()
                session.set_locate(None)
            elif command.kind == CommandKind.UNDO:
                message = session.undo().message
            elif command.kind == CommandKind.REDO:
                message = session.redo().message
            elif command.kind == CommandKind.LOCATE:
                session.set_locate(command.query)
            elif command.kind == CommandKind.HINT:
                if session.state == SessionState.PAUSED:
                    message = Outcome.PAUSED.message
                else:
                    move = session.hint()
                    message = "No moves available" if move is None else f"Try {format_move(move)}"
            elif command.kind == CommandKind.PAUSE:
                message = session.toggle_pause().message
            elif command.kind == CommandKind.HELP:
                message = HELP_TEXT
            elif command.kind == CommandKind.STATS:
                message = format_stats(session.stats)
            elif command.kind == CommandKind.CLEAR_STATS:
                if confirm("Clear stats?", input_fn):
                    session.stats.clear()
                    message = write_stats(session.stats, stats_path) or "Stats cleared"
            elif command.kind == CommandKind.NEW_GAME:
                if session.state == SessionState.WON or confirm("Start a new game?", input_fn):
                    message = persist(session, stats_path)
                    session.new_game()
            elif command.kind == CommandKind.QUIT:
                if confirm("Quit game?", input_fn):
                    message = persist(session, stats_path)
                    if message:
                        output(message)
                    return

            if message:
                output(message)


def main() -> None:
    """Main entry point for the CLI application."""
    parser = argparse.ArgumentParser(description="Play FreeCell in the terminal")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for dealing games (default: random)")
    parser.add_argument("--stats-file", type=Path, default=DEFAULT_STATS_PATH,
                        help=f"Where to keep game stats (default: {DEFAULT_STATS_PATH})")
    parser.add_argument("--no-stats", action="store_true",
                        help="Do not load or save game stats")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: WARNING)")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    stats_path = None if args.no_stats else args.stats_file
    stats = Stats()
    if stats_path is not None:
        try:
            stats = load_stats(stats_path)
        except ValueError as e:
            logger.warning("Ignoring stats: %s", e)

    rng = random.Random(args.seed) if args.seed is not None else None
    session = GameSession(rng=rng, stats=stats)
    print(f"FreeCell: {TABLEAU_SLOTS} columns, type ? for help")
    run(session, stats_path)


if __name__ == "__main__":
    main()
