import math
from collections import deque

from config import MIN_TEMPO_BEATS, TEMPO_HISTORY_SIZE


class TempoEstimator:
    """BPM from the most recent beat timestamps (ms), with IQR outlier rejection."""

    def __init__(self, max_history: int = TEMPO_HISTORY_SIZE):
        self.max_history = max(1, int(max_history))
        self.beat_timestamps: deque[float] = deque(maxlen=self.max_history)

    def add_beat(self, timestamp: float) -> None:
        self.beat_timestamps.append(float(timestamp))

    def intervals(self) -> list[float]:
        """Consecutive inter-beat intervals in ms (n-1 for n beats)."""
        times = list(self.beat_timestamps)
        return [b - a for a, b in zip(times, times[1:])]

    def filtered_intervals(self) -> list[float]:
        """Intervals inside [Q1 - 1.5*IQR, Q3 + 1.5*IQR]; quartiles are not interpolated."""
        intervals = self.intervals()
        if not intervals:
            return []
        ordered = sorted(intervals)
        q1 = ordered[int(math.floor(len(ordered) * 0.25))]
        q3 = ordered[int(math.floor(len(ordered) * 0.75))]
        iqr = q3 - q1
        lower = q1 - 1.5 * iqr
        upper = q3 + 1.5 * iqr
        return [i for i in intervals if lower <= i <= upper]

    def get_tempo(self) -> int:
        """Current tempo in BPM, or 0 when there is not enough data."""
        if len(self.beat_timestamps) < MIN_TEMPO_BEATS:
            return 0

        kept = self.filtered_intervals()
        if not kept:
            return 0

        average = sum(kept) / len(kept)
        if average <= 0:
            return 0
        return int(math.floor(60000.0 / average + 0.5))

    def reset(self) -> None:
        self.beat_timestamps.clear()
