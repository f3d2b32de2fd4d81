import logging
from dataclasses import dataclass
from enum import Enum

from freecell import FreeCell

logger = logging.getLogger(__name__)


class HistoryStatus(str, Enum):
    OK = "OK"
    NO_CHANGES = "NO_CHANGES"
    AT_INITIAL = "AT_INITIAL"
    AT_NEWEST = "AT_NEWEST"


@dataclass
class HistoryResult:
    status: HistoryStatus
    board: FreeCell | None = None


class History:
    """Linear undo/redo log of board snapshots.

    The log holds past boards only. ``undo_index`` is the position of the live
    board: equal to ``len(log)`` while the live board is newer than every
    snapshot. The first undo from that position pushes the live board onto
    the end of the log so that redo can bring it back.
    """

    def __init__(self) -> None:
        self.log: list[FreeCell] = []
        self.undo_index = 0

    def __len__(self) -> int:
        return len(self.log)

    def record(self, board: FreeCell) -> None:
        del self.log[self.undo_index :]
        self.log.append(board.copy())
        self.undo_index = len(self.log)

    def can_redo(self) -> bool:
        return self.undo_index < len(self.log)

    def undo(self, live: FreeCell) -> HistoryResult:
        if len(self.log) == 0:
            return HistoryResult(HistoryStatus.NO_CHANGES)
        if self.undo_index == 0:
            return HistoryResult(HistoryStatus.AT_INITIAL)

        board = self.log[self.undo_index - 1].copy()
        if self.undo_index == len(self.log):
            self.log.append(live.copy())
        self.undo_index -= 1

        logger.debug("Undo to position %d of %d", self.undo_index, len(self.log))
        return HistoryResult(HistoryStatus.OK, board)

    def redo(self) -> HistoryResult:
        if len(self.log) == 0:
            return HistoryResult(HistoryStatus.NO_CHANGES)
        if self.undo_index == len(self.log):
            return HistoryResult(HistoryStatus.AT_NEWEST)

        self.undo_index += 1
        if self.undo_index == len(self.log) - 1:
            # Back at the newest state: drop the placeholder pushed by undo.
            board = self.log.pop()
        else:
            board = self.log[self.undo_index].copy()

        logger.debug("Redo to position %d of %d", self.undo_index, len(self.log))
        return HistoryResult(HistoryStatus.OK, board)

    def reset(self) -> None:
        self.log = []
        self.undo_index = 0
