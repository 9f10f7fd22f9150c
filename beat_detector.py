"""
beatscope - Beat Detector
Flags beats when the energy of a low frequency band jumps above its own
recent average. Energy average is double smoothed: a 43-sample window mean,
then an exponential decay on top of that.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import numpy as np

from config import (
    ENERGY_HISTORY_SIZE,
    MAX_BYTE_VALUE,
    BeatDetectionConfig,
    merge_beat_options,
)
from frames import RawFrame, validate_frame
from frequency_utils import band_bin_range
from logging_utils import log_event


@dataclass
class BeatInfo:
    """Result of one detect() call"""
    is_beat: bool             # True if this tick is a beat
    energy: float             # Band energy of this tick (mean power, 0.0-1.0)
    average_energy: float     # Smoothed baseline after this tick
    delta: float              # energy - average_energy
    timestamp: float          # Milliseconds


class BeatDetector:
    """
    Energy-history beat detector.

    Two implicit states: armed (ready to report) and refractory (a beat was
    reported less than `min_time_between_beats_ms` ago). Frames must arrive
    in non-decreasing timestamp order from a single caller.
    """

    def __init__(self, options: Optional[Union[BeatDetectionConfig, Mapping[str, Any]]] = None):
        self.options: BeatDetectionConfig = merge_beat_options(BeatDetectionConfig(), options)
        self.history_size = ENERGY_HISTORY_SIZE
        self.energy_history: deque[float] = deque([0.0] * self.history_size, maxlen=self.history_size)
        self.average_energy = 0.0
        self.last_beat_timestamp: Optional[float] = None

    def band_energy(self, frame: RawFrame) -> float:
        """Mean power of the normalized magnitudes inside the beat band."""
        freq_range = self.options.frequency_range
        low_bin, high_bin = band_bin_range(
            freq_range.low, freq_range.high, frame.sample_rate, frame.buffer_length
        )
        band = frame.frequency_magnitudes[low_bin:high_bin + 1] / MAX_BYTE_VALUE
        energy = float(np.sum(band ** 2))
        if high_bin > low_bin:
            energy /= (high_bin - low_bin + 1)
        return energy

    def detect(self, frame: Optional[RawFrame]) -> BeatInfo:
        """Process one tick. A None frame is a no-op that reports zeros."""
        if frame is None:
            return BeatInfo(
                is_beat=False,
                energy=0.0,
                average_energy=0.0,
                delta=0.0,
                timestamp=time.time() * 1000.0,
            )

        validate_frame(frame)
        energy = self.band_energy(frame)

        self.energy_history.append(energy)
        history_mean = sum(self.energy_history) / self.history_size

        decay = self.options.decay_rate
        self.average_energy = self.average_energy * decay + history_mean * (1.0 - decay)
        delta = energy - self.average_energy

        now = frame.timestamp
        armed = (
            self.last_beat_timestamp is None
            or (now - self.last_beat_timestamp) > self.options.min_time_between_beats_ms
        )
        is_beat = delta > self.options.threshold and armed
        if is_beat:
            self.last_beat_timestamp = now
            log_event("DEBUG", "Beat", "Beat detected", time_ms=f"{now:.0f}",
                      energy=f"{energy:.4f}", delta=f"{delta:.4f}")

        return BeatInfo(
            is_beat=is_beat,
            energy=energy,
            average_energy=self.average_energy,
            delta=delta,
            timestamp=now,
        )

    def reset(self) -> None:
        """Zero the baseline and history, keep options.

        History is refilled with zeros rather than left empty, exactly like a
        fresh detector, so the first ~43 ticks after a reset lean towards
        under-reporting.
        """
        self.average_energy = 0.0
        self.last_beat_timestamp = None
        self.energy_history = deque([0.0] * self.history_size, maxlen=self.history_size)
        log_event("DEBUG", "Beat", "Detector reset")

    def update_options(self, options: Union[BeatDetectionConfig, Mapping[str, Any]]) -> None:
        """Merge a partial option set; frequency_range merges per field."""
        self.options = merge_beat_options(self.options, options)
        rng = self.options.frequency_range
        log_event("INFO", "Beat", "Options updated",
                  threshold=self.options.threshold,
                  decay_rate=self.options.decay_rate,
                  min_gap_ms=self.options.min_time_between_beats_ms,
                  band=f"{rng.low:.0f}-{rng.high:.0f}Hz")
