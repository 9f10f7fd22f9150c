"""
beatscope - Frame types

One RawFrame is delivered per analysis tick by whatever captures or decodes
the audio. Everything downstream works on these plain values.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from errors import ValidationError


@dataclass
class RawFrame:
    """One analysis snapshot of 8-bit magnitude / waveform data"""
    frequency_magnitudes: np.ndarray  # 0-255 per bin, index 0 = lowest frequency
    time_samples: np.ndarray          # 0-255 per sample, centered at 128
    sample_rate: float                # Hz, constant per session
    timestamp: float = 0.0            # Milliseconds, non-decreasing per consumer
    buffer_length: Optional[int] = None  # Half the FFT size; defaults to len(frequency_magnitudes)

    def __post_init__(self):
        self.frequency_magnitudes = np.asarray(self.frequency_magnitudes, dtype=np.float64).ravel()
        self.time_samples = np.asarray(self.time_samples, dtype=np.float64).ravel()
        if self.buffer_length is None:
            self.buffer_length = len(self.frequency_magnitudes)

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0


@dataclass
class DominantFrequency:
    """Loudest bin of a frame"""
    frequency_hz: float = 0.0
    amplitude: float = 0.0    # 0.0-1.0
    bin_index: int = 0


@dataclass
class NormalizedFrame:
    """Per-tick derived values ready for display"""
    frequency_levels: np.ndarray
    time_levels: np.ndarray
    volume: float = 0.0         # Mean absolute waveform deviation (0.0-1.0)
    peak_level: float = 0.0     # Loudest bin / 255
    is_active: bool = False
    dominant: DominantFrequency = field(default_factory=DominantFrequency)


def validate_frame(frame: RawFrame) -> None:
    """Raise ValidationError if the frame cannot be analysed."""
    n_freq = len(frame.frequency_magnitudes)
    n_time = len(frame.time_samples)
    if n_freq == 0 or n_time == 0:
        raise ValidationError("Frame arrays must not be empty",
                              frequency_bins=n_freq, time_samples=n_time)
    if n_freq != n_time:
        raise ValidationError("Frequency and time arrays differ in length",
                              frequency_bins=n_freq, time_samples=n_time)
    if frame.buffer_length != n_freq:
        raise ValidationError("buffer_length does not match array length",
                              buffer_length=frame.buffer_length, frequency_bins=n_freq)
    if not frame.sample_rate or frame.sample_rate <= 0:
        raise ValidationError("sample_rate must be positive", sample_rate=frame.sample_rate)
