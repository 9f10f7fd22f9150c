import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np

from config import DEFAULT_BAND_CENTERS_HZ


@dataclass
class SpectrumShape:
    """Spectral centroid/spread in Hz, flatness 0 (tonal) .. 1 (noise-like)"""
    centroid: float = 0.0
    spread: float = 0.0
    flatness: float = 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def bin_to_hz(index: int, sample_rate: float, buffer_length: int) -> float:
    """Center frequency of bin `index` for a spectrum of `buffer_length` bins."""
    if buffer_length <= 0:
        return 0.0
    return index * (sample_rate / 2.0) / buffer_length


def band_bin_range(
    freq_low: float,
    freq_high: float,
    sample_rate: float,
    buffer_length: int,
) -> tuple[int, int]:
    """Inclusive (low_bin, high_bin) covering a Hz range, clamped to valid bins.

    The low edge rounds down and the high edge rounds up so the band is never
    narrower than requested.
    """
    nyquist = sample_rate / 2.0
    if buffer_length <= 0 or nyquist <= 0:
        return 0, 0
    low_bin = math.floor(freq_low * buffer_length / nyquist)
    high_bin = math.ceil(freq_high * buffer_length / nyquist)
    last = buffer_length - 1
    return min(max(low_bin, 0), last), min(max(high_bin, 0), last)


def extract_bands(
    magnitudes: Sequence[float] | np.ndarray,
    band_centers_hz: Optional[Iterable[float]] = None,
    sample_rate: float = 44100.0,
    buffer_length: Optional[int] = None,
) -> list[float]:
    """Sample the spectrum at each band center, equalizer style."""
    spectrum = np.asarray(magnitudes, dtype=np.float64).ravel()
    if buffer_length is None:
        buffer_length = len(spectrum)
    centers = DEFAULT_BAND_CENTERS_HZ if band_centers_hz is None else band_centers_hz
    if buffer_length <= 0 or len(spectrum) == 0:
        return [0.0 for _ in centers]

    nyquist = sample_rate / 2.0
    last = min(buffer_length, len(spectrum)) - 1
    bands = []
    for center in centers:
        index = _round_half_up(center * buffer_length / nyquist)
        bands.append(float(spectrum[min(max(index, 0), last)]))
    return bands


def spectrum_shape(
    magnitudes: Sequence[float] | np.ndarray,
    sample_rate: float = 44100.0,
) -> SpectrumShape:
    """Centroid, spread and flatness of a magnitude spectrum.

    Silence (zero total amplitude) yields an all-zero shape. Flatness is only
    informative for spectra with no zero bins; a single zero bin makes it 0.
    """
    spectrum = np.asarray(magnitudes, dtype=np.float64).ravel()
    n_bins = len(spectrum)
    total = float(spectrum.sum()) if n_bins else 0.0
    if total <= 0:
        return SpectrumShape()

    freqs = np.arange(n_bins) * (sample_rate / 2.0) / n_bins
    centroid = float(np.dot(freqs, spectrum) / total)
    spread = math.sqrt(float(np.dot(spectrum, (freqs - centroid) ** 2)) / total)

    # Geometric mean in log space; any silent bin pulls it to zero
    if np.any(spectrum <= 0):
        geometric_mean = 0.0
    else:
        geometric_mean = float(np.exp(np.log(spectrum).mean()))
    arithmetic_mean = total / n_bins
    flatness = geometric_mean / arithmetic_mean

    return SpectrumShape(centroid=centroid, spread=spread, flatness=flatness)
