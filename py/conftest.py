import random

import pytest
from freecell import ACE, KING, Card, FreeCell, Stack, Suit


class UnshuffledRandom(random.Random):
    """Leaves the deck in suit/rank order so deals are known in advance."""

    def shuffle(self, x, *args, **kwargs) -> None:  # noqa: ARG002
        return None


def board_with(
    tableaus: list[list[str]],
    reserve: list[str] | None = None,
    foundation: list[str] | None = None,
) -> FreeCell:
    board = FreeCell()
    for col, cards in enumerate(tableaus):
        board.tableaus[col] = Stack([Card.parse(text) for text in cards])
    for slot, text in enumerate(reserve or []):
        board.reserve[slot] = Card.parse(text) if text else None
    for text in foundation or []:
        card = Card.parse(text)
        board.foundation[int(card.suit)] = card
    return board


@pytest.fixture
def make_board():
    return board_with


@pytest.fixture
def unshuffled_rng():
    return UnshuffledRandom()


@pytest.fixture
def aces_on_top_board() -> FreeCell:
    # Every other card is dealt rank-major so the columns end in queens and
    # kings; the four aces then go on top of the first four columns.
    others = [Card(suit, rank) for rank in range(ACE + 1, KING + 1) for suit in Suit]
    board = FreeCell()
    for idx, card in enumerate(others):
        board.tableaus[idx % 8].add_to_top(card)
    for col, suit in enumerate(Suit):
        board.tableaus[col].add_to_top(Card(suit, ACE))
    return board
