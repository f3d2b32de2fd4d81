import pytest
from freecell import Card, FreeCell, Suit
from freecell_history import History, HistoryStatus


def board_holding(rank: int) -> FreeCell:
    board = FreeCell()
    board.reserve[0] = Card(Suit.SPADE, rank)
    return board


@pytest.fixture
def history():
    return History()


def test_empty_history(history):
    assert history.undo(board_holding(1)).status == HistoryStatus.NO_CHANGES
    assert history.redo().status == HistoryStatus.NO_CHANGES
    assert history.undo_index == 0
    assert not history.can_redo()


def test_undo_then_redo(history):
    history.record(board_holding(1))
    live = board_holding(2)

    result = history.undo(live)
    assert result.status == HistoryStatus.OK
    assert result.board == board_holding(1)
    # The live board is kept at the end of the log for redo
    assert len(history) == 2
    assert history.undo_index == 0

    assert history.undo(board_holding(1)).status == HistoryStatus.AT_INITIAL

    result = history.redo()
    assert result.status == HistoryStatus.OK
    assert result.board == live
    assert len(history) == 1
    assert history.undo_index == 1

    assert history.redo().status == HistoryStatus.AT_NEWEST


def test_walk_back_and_forth(history):
    boards = [board_holding(rank) for rank in range(1, 5)]
    for board in boards[:-1]:
        history.record(board)
    live = boards[-1]

    for expected in reversed(boards[:-1]):
        result = history.undo(live)
        assert result.board == expected
        live = result.board
    assert history.undo(live).status == HistoryStatus.AT_INITIAL

    for expected in boards[1:]:
        result = history.redo()
        assert result.board == expected
        live = result.board
    assert history.redo().status == HistoryStatus.AT_NEWEST
    assert len(history) == 3


def test_record_discards_redo_branch(history):
    history.record(board_holding(1))
    history.record(board_holding(2))
    live = history.undo(board_holding(3)).board
    live = history.undo(live).board
    assert live == board_holding(1)

    history.record(live)
    assert history.log == [board_holding(1)]
    assert history.undo_index == 1
    assert history.redo().status == HistoryStatus.AT_NEWEST


def test_record_takes_a_snapshot(history):
    board = board_holding(1)
    history.record(board)

    board.reserve[1] = Card(Suit.HEART, 9)

    assert history.log[0] == board_holding(1)


def test_returned_boards_do_not_alias_the_log(history):
    history.record(board_holding(1))
    history.record(board_holding(2))
    live = history.undo(board_holding(3)).board
    live = history.undo(live).board

    redone = history.redo().board
    redone.reserve[1] = Card(Suit.HEART, 9)

    assert history.log[1] == board_holding(2)


def test_reset(history):
    history.record(board_holding(1))
    history.reset()

    assert len(history) == 0
    assert history.undo_index == 0
    assert history.undo(board_holding(2)).status == HistoryStatus.NO_CHANGES
