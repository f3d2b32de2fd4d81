import copy
import logging
import random
from dataclasses import dataclass
from enum import Enum
import sys
from typing import Any

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

logger = logging.getLogger(__name__)

ACE = 1
JACK = 11
QUEEN = 12
KING = 13

RESERVE_SLOTS = 4
FOUNDATION_SLOTS = 4
TABLEAU_SLOTS = 8


class Color(str, Enum):
    BLACK = "BLACK"
    RED = "RED"


class Suit(str, Enum):
    CLUB = "CLUB"
    DIAMOND = "DIAMOND"
    HEART = "HEART"
    SPADE = "SPADE"

    @staticmethod
    def index_map():
        return {
            0: Suit.CLUB,
            1: Suit.DIAMOND,
            2: Suit.HEART,
            3: Suit.SPADE,
        }

    @staticmethod
    def from_letter(letter: str) -> "Suit":
        for suit in Suit:
            if suit.letter == letter.lower() or str(suit) == letter:
                return suit
        msg = f"Unknown suit {letter!r}"
        raise ValueError(msg)

    @property
    def color(self) -> Color:
        if self == Suit.CLUB or self == Suit.SPADE:
            return Color.BLACK
        return Color.RED

    @property
    def letter(self) -> str:
        return self.value[0].lower()

    @override
    def __str__(self) -> str:
        return {
            Suit.CLUB: "♣",
            Suit.DIAMOND: "♦",
            Suit.HEART: "♥",
            Suit.SPADE: "♠",
        }[self]

    def __int__(self) -> int:
        for idx, sut in Suit.index_map().items():
            if sut == self:
                return idx

        msg = f"Suit {self} not found in index map"
        raise ValueError(msg)


RANK_LABELS = {
    ACE: "A",
    JACK: "J",
    QUEEN: "Q",
    KING: "K",
}


@dataclass(frozen=True)
class Card:
    suit: Suit
    rank: int

    def __post_init__(self) -> None:
        if not ACE <= self.rank <= KING:
            msg = f"Invalid rank {self.rank}"
            raise ValueError(msg)

    @staticmethod
    def parse(text: str) -> "Card":
        """Parses ``"10♥"``, ``"Ks"``, ``"Td"`` or ``"0c"`` into a card."""
        text = text.strip()
        if len(text) < 2:  # noqa: PLR2004
            msg = f"Cannot parse card {text!r}"
            raise ValueError(msg)

        label, suit = text[:-1].upper(), Suit.from_letter(text[-1])
        if label in ("T", "0"):
            return Card(suit, 10)
        for rank, rank_label in RANK_LABELS.items():
            if rank_label == label:
                return Card(suit, rank)
        if not label.isdigit():
            msg = f"Cannot parse card {text!r}"
            raise ValueError(msg)
        return Card(suit, int(label))

    @property
    def color(self) -> Color:
        return self.suit.color

    @property
    def label(self) -> str:
        return RANK_LABELS.get(self.rank, str(self.rank))

    def is_lower_rank_same_suit(self, other: "Card") -> bool:
        """Whether this card is the same suit as and a lower rank than ``other``.

        Compared against a foundation top, this tells whether the card has
        already been moved to the foundation.
        """
        return self.suit == other.suit and self.rank < other.rank

    def can_stack_on(self, other: "Card") -> bool:
        return self.rank == other.rank - 1 and self.color != other.color

    def can_follow(self, maybe_predecessor: "Card | None") -> bool:
        if maybe_predecessor is None:
            return self.rank == ACE
        return self.rank == maybe_predecessor.rank + 1

    def __lt__(self, other: "Card") -> bool:
        return (int(self.suit), self.rank) < (int(other.suit), other.rank)

    @override
    def __str__(self) -> str:
        return f"{self.label}{self.suit}"

    @override
    def __repr__(self) -> str:
        return f"{self.label}{self.suit}"


HidableCard = Card | None


def new_deck(rng: random.Random | None = None) -> list[Card]:
    """Returns the 52 cards shuffled by ``rng`` (the ``random`` module when omitted)."""
    deck = [Card(suit, rank) for suit in Suit for rank in range(ACE, KING + 1)]
    (rng or random).shuffle(deck)
    return deck


def deal(deck: list[Card]) -> list["Stack"]:
    tableaus = [Stack() for _ in range(TABLEAU_SLOTS)]
    for idx, card in enumerate(deck):
        tableaus[idx % TABLEAU_SLOTS].add_to_top(card)
    return tableaus


class Stack:
    def __init__(self, initial_cards: list[Card] | None = None):
        self.cards = list(initial_cards or [])

    @override
    def __eq__(self, other: Any) -> bool:  # pyright: ignore [reportAny]
        if not isinstance(other, Stack):
            return False
        return self.cards == other.cards

    def add_to_top(self, card: Card) -> None:
        self.cards.append(card)

    def add_multiple_to_top(self, cards: list[Card]) -> None:
        self.cards.extend(cards)

    def inspect_top(self) -> HidableCard:
        if len(self.cards) == 0:
            return None
        return self.cards[-1]

    def inspect_all(self) -> list[Card]:
        return self.cards.copy()

    def get_from_top(self) -> HidableCard:
        if len(self.cards) == 0:
            return None
        return self.cards.pop()

    def get_multiple_from_top(self, n: int) -> list[Card]:
        assert 0 <= n <= len(self.cards)  # noqa: S101
        start = len(self.cards) - n
        cards = self.cards[start:]
        del self.cards[start:]
        return cards

    def __len__(self) -> int:
        return len(self.cards)


class Zone(str, Enum):
    RESERVE = "RESV"
    FOUNDATION = "FOUN"
    TABLEAU = "TABL"


@dataclass(frozen=True)
class Reference:
    """A slot the player can point at: ``RESERVE(index)``, ``FOUNDATION`` or ``TABLEAU(index)``."""

    zone: Zone
    index: int = 0

    @staticmethod
    def reserve(index: int) -> "Reference":
        return Reference(Zone.RESERVE, index)

    @staticmethod
    def foundation() -> "Reference":
        return Reference(Zone.FOUNDATION)

    @staticmethod
    def tableau(index: int) -> "Reference":
        return Reference(Zone.TABLEAU, index)

    def is_valid(self) -> bool:
        if self.zone == Zone.RESERVE:
            return 0 <= self.index < RESERVE_SLOTS
        if self.zone == Zone.TABLEAU:
            return 0 <= self.index < TABLEAU_SLOTS
        return True

    @override
    def __str__(self) -> str:
        if self.zone == Zone.FOUNDATION:
            return self.zone.value
        return f"{self.zone.value}_{self.index + 1}"


@dataclass(frozen=True)
class Move:
    source: Reference
    destination: Reference
    count: int = 1

    @override
    def __str__(self) -> str:
        return f"{self.source} ({self.count}) -> {self.destination}"

    @override
    def __repr__(self) -> str:
        return self.__str__()


class FreeCell:
    def __init__(self) -> None:
        self.reserve: list[HidableCard] = [None] * RESERVE_SLOTS
        self.foundation: list[HidableCard] = [None] * FOUNDATION_SLOTS
        self.tableaus = [Stack() for _ in range(TABLEAU_SLOTS)]

    @staticmethod
    def new_game(rng: random.Random | None = None) -> "FreeCell":
        board = FreeCell()
        board.tableaus = deal(new_deck(rng))
        return board

    @override
    def __eq__(self, other: Any) -> bool:  # pyright: ignore [reportAny]
        if not isinstance(other, FreeCell):
            return False
        return (
            self.reserve == other.reserve
            and self.foundation == other.foundation
            and self.tableaus == other.tableaus
        )

    @override
    def __str__(self) -> str:
        reserve = " ".join(str(card) if card else "__" for card in self.reserve)
        foundation = " ".join(str(card) if card else "__" for card in self.foundation)
        return f"FreeCell: [{reserve}] [{foundation}] {[tableau.cards for tableau in self.tableaus]}"

    def copy(self) -> "FreeCell":
        return copy.deepcopy(self)

    # Queries

    def reserve_card(self, slot: int) -> HidableCard:
        return self.reserve[slot]

    def foundation_card(self, suit: Suit) -> HidableCard:
        return self.foundation[int(suit)]

    def tableau_cards(self, col: int) -> list[Card]:
        return self.tableaus[col].inspect_all()

    def tableau_top(self, col: int) -> HidableCard:
        return self.tableaus[col].inspect_top()

    def can_place_on_tableau(self, card: Card, col: int) -> bool:
        top = self.tableaus[col].inspect_top()
        return top is None or card.can_stack_on(top)

    def can_place_on_foundation(self, card: Card) -> bool:
        return card.can_follow(self.foundation_card(card.suit))

    def should_auto_place_on_foundation(self, card: Card) -> bool:
        if not self.can_place_on_foundation(card):
            return False

        def foundation_rank(suit: Suit) -> int:
            top = self.foundation_card(suit)
            return 0 if top is None else top.rank

        min_black = min(foundation_rank(Suit.CLUB), foundation_rank(Suit.SPADE))
        min_red = min(foundation_rank(Suit.DIAMOND), foundation_rank(Suit.HEART))

        if card.color == Color.BLACK:
            return card.rank <= min(min_black + 3, min_red + 2)
        return card.rank <= min(min_red + 3, min_black + 2)

    def group_size(self, col: int) -> int:
        """Length of the run at the top of ``col`` that can move as one group."""
        cards = self.tableaus[col].cards
        if len(cards) <= 1:
            return len(cards)

        n = 1
        for idx in range(len(cards) - 1, 0, -1):
            if not cards[idx].can_stack_on(cards[idx - 1]):
                break
            n += 1
        return n

    def free_reserve_count(self) -> int:
        return sum(1 for card in self.reserve if card is None)

    def empty_tableau_count(self) -> int:
        return sum(1 for tableau in self.tableaus if len(tableau) == 0)

    def move_capacity(self, src: int, dst: int) -> int:
        # Each free reserve slot adds one card; each empty column doubles the
        # total. An empty destination is consumed by the move itself.
        assert src != dst  # noqa: S101

        n_empty = self.empty_tableau_count()
        if len(self.tableaus[dst]) == 0:
            n_empty -= 1

        return min(self.group_size(src), (self.free_reserve_count() + 1) * 2**n_empty)

    def stacking_depth(self, src: int, dst: int) -> int:
        """Smallest depth in the movable group of ``src`` whose card stacks on
        the top of ``dst``, or 0 when no card of the group does."""
        top = self.tableaus[dst].inspect_top()
        assert top is not None  # noqa: S101

        cards = self.tableaus[src].cards
        for depth in range(1, self.group_size(src) + 1):
            if cards[-depth].can_stack_on(top):
                return depth
        return 0

    def reserve_has_free_slot(self) -> bool:
        return any(card is None for card in self.reserve)

    def is_game_won(self) -> bool:
        return all(card is not None and card.rank == KING for card in self.foundation)

    def all_cards(self) -> list[Card]:
        """Every card on the board; a foundation top stands for all ranks below it."""
        cards = [card for card in self.reserve if card is not None]
        for card in self.foundation:
            if card is not None:
                cards.extend(Card(card.suit, rank) for rank in range(ACE, card.rank + 1))
        for tableau in self.tableaus:
            cards.extend(tableau.inspect_all())
        return cards

    def get_all_legal_moves(self) -> list[Move]:
        moves: list[Move] = []

        for slot, card in enumerate(self.reserve):
            if card is None:
                continue
            if self.can_place_on_foundation(card):
                moves.append(Move(Reference.reserve(slot), Reference.foundation()))
            for col in range(TABLEAU_SLOTS):
                if self.can_place_on_tableau(card, col):
                    moves.append(Move(Reference.reserve(slot), Reference.tableau(col)))

        for src, tableau in enumerate(self.tableaus):
            top = tableau.inspect_top()
            if top is None:
                continue
            if self.can_place_on_foundation(top):
                moves.append(Move(Reference.tableau(src), Reference.foundation()))
            if self.reserve_has_free_slot():
                moves.append(Move(Reference.tableau(src), Reference.reserve(self.reserve.index(None))))
            for dst, other_tableau in enumerate(self.tableaus):
                if dst == src:
                    continue
                capacity = self.move_capacity(src, dst)
                if len(other_tableau) == 0:
                    count = capacity
                else:
                    count = self.stacking_depth(src, dst)
                    if count > capacity:
                        count = 0
                if count > 0:
                    moves.append(Move(Reference.tableau(src), Reference.tableau(dst), count))

        return moves

    # Mutations

    def place_on_foundation(self, card: Card) -> None:
        self.assert_free(card)
        assert self.can_place_on_foundation(card)  # noqa: S101

        self.foundation[int(card.suit)] = card

    def place_on_tableau(self, card: Card, col: int) -> None:
        self.assert_free(card)
        assert self.can_place_on_tableau(card, col)  # noqa: S101

        self.tableaus[col].add_to_top(card)

    def place_on_reserve(self, card: Card) -> None:
        self.assert_free(card)
        assert self.reserve_has_free_slot(), "reserve is full"  # noqa: S101

        self.reserve[self.reserve.index(None)] = card

    def move_tableau_group(self, src: int, dst: int, n: int) -> None:
        assert n >= 1  # noqa: S101
        assert src != dst  # noqa: S101
        assert n <= self.move_capacity(src, dst)  # noqa: S101

        self.tableaus[dst].add_multiple_to_top(self.tableaus[src].get_multiple_from_top(n))
        logger.debug("Moved %d card(s) from tableau %d to tableau %d", n, src, dst)

    def remove_from_reserve(self, slot: int) -> Card:
        card = self.reserve[slot]
        assert card is not None, "reserve is empty"  # noqa: S101

        self.reserve[slot] = None
        return card

    def pop_tableau_top(self, col: int) -> Card:
        card = self.tableaus[col].get_from_top()
        assert card is not None, "tableau is empty"  # noqa: S101
        return card

    def sweep_step(self, max_moves: int) -> bool:
        """Moves up to ``max_moves`` safe cards to the foundation, reserve
        first, then tableau tops. Returns whether any card moved."""
        left = max_moves

        for slot, card in enumerate(self.reserve):
            if left == 0:
                break
            if card is not None and self.should_auto_place_on_foundation(card):
                self.remove_from_reserve(slot)
                self.place_on_foundation(card)
                left -= 1

        if left != 0:
            sweep: list[int] = []
            for col, tableau in enumerate(self.tableaus):
                top = tableau.inspect_top()
                if top is not None and self.should_auto_place_on_foundation(top):
                    sweep.append(col)

            for col in sweep[:left]:
                self.place_on_foundation(self.pop_tableau_top(col))
                left -= 1

        if left != max_moves:
            logger.debug("Swept %d card(s) to the foundation", max_moves - left)
        return left != max_moves

    def assert_free(self, card: Card) -> None:
        assert card not in self.reserve, "card is not free; found in reserve"  # noqa: S101
        top = self.foundation_card(card.suit)
        assert top is None or not (card == top or card.is_lower_rank_same_suit(top)), (  # noqa: S101
            "card is not free; found in foundation"
        )
        assert all(card not in tableau.cards for tableau in self.tableaus), (  # noqa: S101
            "card is not free; found in tableau"
        )
