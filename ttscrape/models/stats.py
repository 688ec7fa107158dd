"""
Dataclasses for scrape results and run statistics.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


@dataclass
class SoundResult:
    """The outcome of scraping a single sound."""

    sound_id: str
    info: Optional[dict[str, Any]] = None
    error: Optional[Exception] = None
    elapsed: float = 0.0
    videos: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": str(self.error), "time_ms": int(self.elapsed * 1000)}
        return {
            "info": self.info,
            "videos": self.videos,
            "video_count": len(self.videos),
            "time_ms": int(self.elapsed * 1000),
        }


@dataclass
class ScrapeStats:
    """Tracks statistics for a concurrent scrape run."""

    total_sounds: int = 0
    successful: int = 0
    failed: int = 0
    videos_collected: int = 0
    total_task_time: float = 0.0
    results: dict[str, SoundResult] = field(default_factory=dict, repr=False)
    _start_time: float = field(default=0.0, repr=False)
    _end_time: Optional[float] = field(default=None, repr=False)

    def __post_init__(self):
        self._start_time = time.monotonic()

    def record(self, result: SoundResult) -> None:
        """Adds the outcome of one sound to the totals."""
        self.results[result.sound_id] = result
        if result.ok:
            self.successful += 1
            self.videos_collected += len(result.videos)
        else:
            self.failed += 1
        self.total_task_time += result.elapsed

    def finish(self) -> None:
        self._end_time = time.monotonic()

    @property
    def wall_time(self) -> float:
        end = self._end_time if self._end_time is not None else time.monotonic()
        return end - self._start_time

    @property
    def average_time(self) -> float:
        processed = self.successful + self.failed
        return self.total_task_time / processed if processed else 0.0

    @property
    def speedup(self) -> float:
        """Sum of per-sound times over wall time: the effective concurrency."""
        wall = self.wall_time
        return self.total_task_time / wall if wall > 0 else 0.0

    def to_report(self) -> dict[str, Any]:
        """Builds the results document of the run."""
        return {
            "results": {sid: r.to_dict() for sid, r in self.results.items()},
            "metadata": {
                "total_sounds": self.total_sounds,
                "successful": self.successful,
                "failed": self.failed,
                "average_time_ms": int(self.average_time * 1000),
                "total_execution_time_ms": int(self.wall_time * 1000),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
