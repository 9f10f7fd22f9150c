"""
beatscope - Frame Normalizer
Turns a raw 8-bit frame into display-ready levels plus volume / dominant
frequency scalars. Pure functions, safe to call at any time.
"""

from typing import Optional

import numpy as np

from config import (
    ACTIVE_VOLUME_THRESHOLD,
    MAX_BYTE_VALUE,
    TIME_DOMAIN_CENTER,
    ProcessingConfig,
)
from frames import DominantFrequency, NormalizedFrame, RawFrame, validate_frame
from frequency_utils import bin_to_hz

LOG_BASE = 10.0
LOG_FLOOR = 0.001  # Keeps log scaling away from log(0)


def log_scale(levels: np.ndarray) -> np.ndarray:
    """Map [0,1] levels onto a log10 curve that still ends at 1.0."""
    clipped = np.maximum(levels, LOG_FLOOR)
    return np.log(clipped * (LOG_BASE - 1.0) + 1.0) / np.log(LOG_BASE)


def normalize(frame: RawFrame, options: Optional[ProcessingConfig] = None) -> NormalizedFrame:
    """Normalize one frame. Raises ValidationError for malformed frames."""
    validate_frame(frame)
    opts = options or ProcessingConfig()

    # Time domain: 0..255 -> -1..1
    time_levels = frame.time_samples / TIME_DOMAIN_CENTER - 1.0
    volume = float(np.mean(np.abs(time_levels)))

    # argmax returns the first occurrence, so ties go to the lowest bin
    magnitudes = frame.frequency_magnitudes
    max_index = int(np.argmax(magnitudes))
    max_value = float(magnitudes[max_index])

    frequency_levels = magnitudes.copy()
    if opts.normalize and max_value > 0:
        frequency_levels = frequency_levels / max_value
        if opts.logarithmic:
            frequency_levels = log_scale(frequency_levels)

    dominant = DominantFrequency(
        frequency_hz=bin_to_hz(max_index, frame.sample_rate, frame.buffer_length),
        amplitude=max_value / MAX_BYTE_VALUE,
        bin_index=max_index,
    )

    return NormalizedFrame(
        frequency_levels=frequency_levels,
        time_levels=time_levels,
        volume=volume,
        peak_level=max_value / MAX_BYTE_VALUE,
        is_active=volume > ACTIVE_VOLUME_THRESHOLD,
        dominant=dominant,
    )
