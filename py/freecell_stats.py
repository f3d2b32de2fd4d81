import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_STATS_PATH = Path.home() / ".config" / "freecell" / "stats.json"


def time_str(secs: int) -> str:
    return f"{secs // 60:>2}:{secs % 60:02}"


@dataclass
class Stats:
    games: int = 0
    won: int = 0

    highest_time: int = 0
    lowest_time: int = 0
    total_time: int = 0

    longest_streak: int = 0
    current_streak: int = 0

    def win_rate(self) -> int:
        if self.games == 0:
            return 0
        return self.won * 100 // self.games

    def average_time(self) -> int:
        if self.won == 0:
            return 0
        return self.total_time // self.won

    def record_game(self, *, won: bool, play_time: int) -> None:
        self.games += 1

        if not won:
            self.current_streak = 0
            return

        self.won += 1
        if self.lowest_time == 0:
            self.lowest_time = play_time
        else:
            self.lowest_time = min(play_time, self.lowest_time)
        self.highest_time = max(play_time, self.highest_time)
        self.total_time += play_time

        self.current_streak += 1
        self.longest_streak = max(self.current_streak, self.longest_streak)

    def clear(self) -> None:
        for field in fields(self):
            setattr(self, field.name, 0)

    def as_jsonable_dict(self) -> dict:
        return asdict(self)

    @staticmethod
    def from_jsonable_dict(data: dict) -> "Stats":
        stats = Stats()
        for field in fields(stats):
            value = data.get(field.name)
            if value is None:
                continue
            if not isinstance(value, int):
                msg = f"Invalid value for {field.name}: {value!r}"
                raise ValueError(msg)
            setattr(stats, field.name, value)
        return stats


def load_stats(path: Path = DEFAULT_STATS_PATH) -> Stats:
    if not path.exists():
        return Stats()

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        msg = f"Malformed stats file {path}: {e}"
        raise ValueError(msg) from e
    if not isinstance(data, dict):
        msg = f"Malformed stats file {path}"
        raise ValueError(msg)

    return Stats.from_jsonable_dict(data)


def save_stats(stats: Stats, path: Path = DEFAULT_STATS_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(stats.as_jsonable_dict()) + "\n")
    logger.debug("Saved stats to %s", path)
