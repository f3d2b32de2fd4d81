import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from freecell import Card, Color, FreeCell, HidableCard, Move, Reference, Zone
from freecell_history import History, HistoryStatus
from freecell_stats import Stats

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_BATCH = 3


class Outcome(str, Enum):
    OK = "OK"
    SELECTED = "SELECTED"
    CANCELLED = "CANCELLED"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    INVALID_MOVE = "INVALID_MOVE"
    SLOT_EMPTY = "SLOT_EMPTY"
    RESERVE_SLOT_EMPTY = "RESERVE_SLOT_EMPTY"
    CANNOT_MOVE_TO_FOUNDATION = "CANNOT_MOVE_TO_FOUNDATION"
    CANNOT_MOVE_TO_TABLEAU = "CANNOT_MOVE_TO_TABLEAU"
    CANNOT_MOVE_CARDS = "CANNOT_MOVE_CARDS"
    NO_FREE_RESERVE = "NO_FREE_RESERVE"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    GAME_WON = "GAME_WON"
    PAUSED = "PAUSED"
    RESUMED = "RESUMED"
    NO_CHANGES = "NO_CHANGES"
    AT_INITIAL_STATE = "AT_INITIAL_STATE"
    AT_NEWEST_STATE = "AT_NEWEST_STATE"

    @property
    def message(self) -> str:
        return {
            Outcome.OK: "",
            Outcome.SELECTED: "",
            Outcome.CANCELLED: "",
            Outcome.INVALID_REFERENCE: "Invalid slot",
            Outcome.INVALID_MOVE: "Invalid action",
            Outcome.SLOT_EMPTY: "Tableau slot is empty",
            Outcome.RESERVE_SLOT_EMPTY: "Reserve slot is empty",
            Outcome.CANNOT_MOVE_TO_FOUNDATION: "Cannot move to foundation",
            Outcome.CANNOT_MOVE_TO_TABLEAU: "Cannot move to tableau",
            Outcome.CANNOT_MOVE_CARDS: "Cannot move cards",
            Outcome.NO_FREE_RESERVE: "No free reserve slots",
            Outcome.INSUFFICIENT_CAPACITY: "Not enough free slots to move",
            Outcome.GAME_WON: "Game is won; start a new game",
            Outcome.PAUSED: "Game is paused",
            Outcome.RESUMED: "",
            Outcome.NO_CHANGES: "No changes made",
            Outcome.AT_INITIAL_STATE: "Already at initial state",
            Outcome.AT_NEWEST_STATE: "Already at newest state",
        }[self]


HISTORY_OUTCOMES = {
    HistoryStatus.OK: Outcome.OK,
    HistoryStatus.NO_CHANGES: Outcome.NO_CHANGES,
    HistoryStatus.AT_INITIAL: Outcome.AT_INITIAL_STATE,
    HistoryStatus.AT_NEWEST: Outcome.AT_NEWEST_STATE,
}


class SessionState(str, Enum):
    IDLE = "IDLE"
    ACTION_PENDING = "ACTION_PENDING"
    PAUSED = "PAUSED"
    WON = "WON"


class Match(str, Enum):
    NOTHING = "NOTHING"
    LOW = "LOW"
    RANK = "RANK"


@dataclass(frozen=True)
class Locate:
    """Which cards to highlight: an optional color plus low cards or one rank.

    ``LOW`` picks the cards that could go on the foundation right now.
    ``RANK`` picks every card of that rank, and the foundations that already
    hold it.
    """

    color: Color | None = None
    match: Match = Match.NOTHING
    rank: int = 0

    def matches_card(self, card: Card, board: FreeCell) -> bool:
        if self.color is not None and card.color != self.color:
            return False
        if self.match == Match.LOW:
            return board.can_place_on_foundation(card)
        if self.match == Match.RANK:
            return card.rank == self.rank
        return False

    def matches_foundation(self, top: Card) -> bool:
        if self.color is not None and top.color != self.color:
            return False
        return self.match == Match.RANK and self.rank <= top.rank


class GameClock:
    """Elapsed play time in whole seconds, not counting paused time."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self.clock = clock
        self.reset()

    def reset(self) -> None:
        self.start = self.clock()
        self.pause_time: float | None = None
        self.pause_duration = 0.0

    @property
    def paused(self) -> bool:
        return self.pause_time is not None

    def pause(self) -> None:
        if self.pause_time is None:
            self.pause_time = self.clock()

    def resume(self) -> None:
        if self.pause_time is not None:
            self.pause_duration += self.clock() - self.pause_time
            self.pause_time = None

    def toggle_pause(self) -> None:
        if self.paused:
            self.resume()
        else:
            self.pause()

    def play_time(self) -> int:
        now = self.pause_time if self.pause_time is not None else self.clock()
        return int(now - self.start - self.pause_duration)


@dataclass(kw_only=True, unsafe_hash=True, eq=True)
class Render:
    state: str
    reserve: list[HidableCard]
    foundation: list[HidableCard]  # top card on each foundation
    tableaus: list[list[Card]]
    pending: Reference | None
    locate: Locate | None
    highlighted: list[Card]
    move_count: int
    undo_count: int
    play_time: int


class GameSession:
    """Drives one game of FreeCell at a time.

    Moves are entered in two steps: ``select`` a source slot, then
    ``select`` a destination. Each successful move records the previous
    board in the history and arms the sweep, which ``tick`` then advances
    one batch per call.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        stats: Stats | None = None,
        sweep_batch: int = DEFAULT_SWEEP_BATCH,
    ) -> None:
        self.rng = rng
        self.clock = GameClock(clock)
        self.stats = stats if stats is not None else Stats()
        self.sweep_batch = sweep_batch

        self.board = FreeCell.new_game(self.rng)
        self.history = History()
        self.pending: Reference | None = None
        self.locate_query: Locate | None = None
        self.try_sweep = True
        self.game_won = False
        self.game_ended = False

        self.move_count = 0
        self.undo_count = 0

    @property
    def state(self) -> SessionState:
        if self.game_won:
            return SessionState.WON
        if self.clock.paused:
            return SessionState.PAUSED
        if self.pending is not None:
            return SessionState.ACTION_PENDING
        return SessionState.IDLE

    def new_game(self, rng: random.Random | None = None) -> None:
        self.end_game()
        if rng is not None:
            self.rng = rng

        self.board = FreeCell.new_game(self.rng)
        self.history.reset()
        self.pending = None
        self.locate_query = None
        self.try_sweep = True
        self.game_won = False
        self.game_ended = False
        self.move_count = 0
        self.undo_count = 0
        self.clock.reset()
        logger.info("Dealt a new game")
        logger.debug("%s", self.board)

    def end_game(self) -> bool:
        """Records the current game in the stats, once, if any move was made."""
        if self.game_ended or len(self.history) == 0:
            return False

        self.stats.record_game(won=self.game_won, play_time=self.clock.play_time())
        self.game_ended = True
        return True

    def toggle_pause(self) -> Outcome:
        """Pauses or resumes the clock; a won game stays paused."""
        if self.game_won:
            return Outcome.GAME_WON

        self.pending = None
        self.clock.toggle_pause()
        if self.clock.paused:
            logger.info("Paused at %ds", self.clock.play_time())
            return Outcome.PAUSED
        return Outcome.RESUMED

    def select(self, ref: Reference) -> Outcome:
        if self.game_won:
            return Outcome.GAME_WON
        if self.clock.paused:
            return Outcome.PAUSED
        if not ref.is_valid():
            self.pending = None
            return Outcome.INVALID_REFERENCE

        source = self.pending
        if source is None:
            return self._select_source(ref)

        self.pending = None
        outcome = self._resolve(source, ref)
        if outcome == Outcome.OK:
            self.move_count += 1
            self.try_sweep = True
            self._check_won()
        else:
            logger.debug("Rejected %s -> %s: %s", source, ref, outcome.value)
        return outcome

    def cancel(self) -> Outcome:
        self.pending = None
        return Outcome.CANCELLED

    def undo(self) -> Outcome:
        if self.game_won:
            return Outcome.GAME_WON
        if self.clock.paused:
            return Outcome.PAUSED
        self.pending = None

        result = self.history.undo(self.board)
        if result.board is not None:
            self.board = result.board
            self.undo_count += 1
        return HISTORY_OUTCOMES[result.status]

    def redo(self) -> Outcome:
        if self.game_won:
            return Outcome.GAME_WON
        if self.clock.paused:
            return Outcome.PAUSED
        self.pending = None

        result = self.history.redo()
        if result.board is not None:
            self.board = result.board
            if self.history.can_redo():
                self.try_sweep = True
        return HISTORY_OUTCOMES[result.status]

    def tick(self) -> bool:
        """Advances the game by one step; returns whether anything changed."""
        if self.game_won or self.clock.paused:
            return False
        if self.board.is_game_won():
            self._check_won()
            return True
        if not self.try_sweep:
            return False

        if not self.board.sweep_step(self.sweep_batch):
            self.try_sweep = False
            return False
        self._check_won()
        return True

    def hint(self) -> Move | None:
        if self.game_won or self.clock.paused:
            return None
        moves = self.board.get_all_legal_moves()
        if not moves:
            return None
        logger.debug("Hint: %s", moves[0])
        return moves[0]

    def set_locate(self, query: Locate | None) -> None:
        self.locate_query = query

    def locate(self, query: Locate | None = None) -> list[Card]:
        """Returns the cards ``query`` (the current locate query when omitted) highlights.

        Foundation tops are included when the foundation already holds the
        queried rank.
        """
        if query is None:
            query = self.locate_query
        if query is None:
            return []

        found = [card for card in self.board.reserve if card is not None and query.matches_card(card, self.board)]
        for col in range(len(self.board.tableaus)):
            found.extend(card for card in self.board.tableau_cards(col) if query.matches_card(card, self.board))
        found.extend(card for card in self.board.foundation if card is not None and query.matches_foundation(card))
        return found

    def render(self) -> Render:
        return Render(
            state=self.state.value,
            reserve=list(self.board.reserve),
            foundation=list(self.board.foundation),
            tableaus=[self.board.tableau_cards(col) for col in range(len(self.board.tableaus))],
            pending=self.pending,
            locate=self.locate_query,
            highlighted=self.locate(),
            move_count=self.move_count,
            undo_count=self.undo_count,
            play_time=self.clock.play_time(),
        )

    def _check_won(self) -> None:
        if self.board.is_game_won() and not self.game_won:
            self.game_won = True
            self.try_sweep = False
            self.clock.pause()
            logger.info("Game won after %d moves in %ds", self.move_count, self.clock.play_time())

    def _select_source(self, ref: Reference) -> Outcome:
        if ref.zone == Zone.FOUNDATION:
            return Outcome.INVALID_MOVE
        if ref.zone == Zone.TABLEAU and len(self.board.tableaus[ref.index]) == 0:
            return Outcome.SLOT_EMPTY
        if ref.zone == Zone.RESERVE and self.board.reserve_card(ref.index) is None:
            return Outcome.RESERVE_SLOT_EMPTY

        self.pending = ref
        return Outcome.SELECTED

    def _resolve(self, source: Reference, destination: Reference) -> Outcome:
        if source.zone == Zone.RESERVE and destination.zone == Zone.FOUNDATION:
            return self._move_reserve_to_foundation(source.index)
        elif source.zone == Zone.RESERVE and destination.zone == Zone.TABLEAU:
            return self._move_reserve_to_tableau(source.index, destination.index)
        elif source.zone == Zone.TABLEAU and destination.zone == Zone.FOUNDATION:
            return self._move_tableau_to_foundation(source.index)
        elif source.zone == Zone.TABLEAU and destination.zone == Zone.RESERVE:
            return self._move_tableau_to_reserve(source.index)
        elif source.zone == Zone.TABLEAU and destination.zone == Zone.TABLEAU:
            if source.index == destination.index:
                return self._move_tableau_to_reserve(source.index)
            return self._move_tableau_to_tableau(source.index, destination.index)
        return Outcome.INVALID_MOVE

    def _move_reserve_to_foundation(self, slot: int) -> Outcome:
        card = self.board.reserve_card(slot)
        if card is None:
            return Outcome.RESERVE_SLOT_EMPTY
        if not self.board.can_place_on_foundation(card):
            return Outcome.CANNOT_MOVE_TO_FOUNDATION

        self.history.record(self.board)
        self.board.remove_from_reserve(slot)
        self.board.place_on_foundation(card)
        logger.debug("Moved %s from reserve %d to the foundation", card, slot)
        return Outcome.OK

    def _move_reserve_to_tableau(self, slot: int, col: int) -> Outcome:
        card = self.board.reserve_card(slot)
        if card is None:
            return Outcome.RESERVE_SLOT_EMPTY
        if not self.board.can_place_on_tableau(card, col):
            return Outcome.CANNOT_MOVE_TO_TABLEAU

        self.history.record(self.board)
        self.board.remove_from_reserve(slot)
        self.board.place_on_tableau(card, col)
        logger.debug("Moved %s from reserve %d to tableau %d", card, slot, col)
        return Outcome.OK

    def _move_tableau_to_foundation(self, col: int) -> Outcome:
        card = self.board.tableau_top(col)
        if card is None:
            return Outcome.SLOT_EMPTY
        if not self.board.can_place_on_foundation(card):
            return Outcome.CANNOT_MOVE_TO_FOUNDATION

        self.history.record(self.board)
        self.board.pop_tableau_top(col)
        self.board.place_on_foundation(card)
        logger.debug("Moved %s from tableau %d to the foundation", card, col)
        return Outcome.OK

    def _move_tableau_to_reserve(self, col: int) -> Outcome:
        if len(self.board.tableaus[col]) == 0:
            return Outcome.SLOT_EMPTY
        if not self.board.reserve_has_free_slot():
            return Outcome.NO_FREE_RESERVE

        self.history.record(self.board)
        card = self.board.pop_tableau_top(col)
        self.board.place_on_reserve(card)
        logger.debug("Moved %s from tableau %d to the reserve", card, col)
        return Outcome.OK

    def _move_tableau_to_tableau(self, src: int, dst: int) -> Outcome:
        if len(self.board.tableaus[src]) == 0:
            return Outcome.SLOT_EMPTY

        capacity = self.board.move_capacity(src, dst)
        if len(self.board.tableaus[dst]) == 0:
            n = capacity
        else:
            n = self.board.stacking_depth(src, dst)
            if n == 0:
                return Outcome.CANNOT_MOVE_CARDS
            if n > capacity:
                return Outcome.INSUFFICIENT_CAPACITY

        self.history.record(self.board)
        self.board.move_tableau_group(src, dst, n)
        return Outcome.OK
