"""
beatscope - Temporal Smoother
Exponential smoothing of normalized frames across ticks to calm visual jitter.
The cache holds post-blend values, so smoothing compounds from tick to tick.
"""

from dataclasses import replace
from typing import Optional

import numpy as np

from config import ProcessingConfig, check_accepted_range
from frame_normalizer import normalize
from frames import NormalizedFrame, RawFrame


def blend_levels(previous: np.ndarray, current: np.ndarray, factor: float) -> np.ndarray:
    """Blend the overlapping prefix; indices beyond `previous` pass through."""
    out = np.array(current, dtype=np.float64, copy=True)
    overlap = min(len(previous), len(out))
    if overlap:
        out[:overlap] = factor * previous[:overlap] + (1.0 - factor) * out[:overlap]
    return out


class TemporalSmoother:
    """Owns the previous tick's levels for one display consumer."""

    def __init__(self, smoothing_factor: Optional[float] = None, options: Optional[ProcessingConfig] = None):
        self.options = options or ProcessingConfig()
        # An explicit factor wins over options.smoothing
        self.smoothing_factor = self.options.smoothing if smoothing_factor is None else smoothing_factor
        self._prev_frequency_levels = np.zeros(0)
        self._prev_time_levels = np.zeros(0)
        self._prev_volume = 0.0
        self._prev_peak_level = 0.0
        self._last_frame: Optional[NormalizedFrame] = None

    @property
    def smoothing_factor(self) -> float:
        return self._smoothing_factor

    @smoothing_factor.setter
    def smoothing_factor(self, value: float) -> None:
        check_accepted_range('smoothing', float(value))
        self._smoothing_factor = float(np.clip(float(value), 0.0, 1.0))

    @property
    def last_frame(self) -> Optional[NormalizedFrame]:
        return self._last_frame

    def smooth(self, frame: NormalizedFrame) -> NormalizedFrame:
        """Blend `frame` against the cached previous values and return the result."""
        factor = self._smoothing_factor
        if self._last_frame is not None and factor > 0:
            frame = replace(
                frame,
                frequency_levels=blend_levels(self._prev_frequency_levels, frame.frequency_levels, factor),
                time_levels=blend_levels(self._prev_time_levels, frame.time_levels, factor),
                volume=factor * self._prev_volume + (1.0 - factor) * frame.volume,
                peak_level=factor * self._prev_peak_level + (1.0 - factor) * frame.peak_level,
            )

        self._prev_frequency_levels = np.array(frame.frequency_levels, dtype=np.float64, copy=True)
        self._prev_time_levels = np.array(frame.time_levels, dtype=np.float64, copy=True)
        self._prev_volume = frame.volume
        self._prev_peak_level = frame.peak_level
        self._last_frame = frame
        return frame

    def process(self, raw_frame: Optional[RawFrame]) -> Optional[NormalizedFrame]:
        """Normalize then smooth. A None frame returns the last result untouched."""
        if raw_frame is None:
            return self._last_frame
        return self.smooth(normalize(raw_frame, self.options))

    def reset(self) -> None:
        self._prev_frequency_levels = np.zeros(0)
        self._prev_time_levels = np.zeros(0)
        self._prev_volume = 0.0
        self._prev_peak_level = 0.0
        self._last_frame = None
