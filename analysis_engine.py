"""
beatscope - Analysis Engine
Runs every per-tick analysis stage on one RawFrame: normalization with
temporal smoothing, band extraction, spectral shape, beat + tempo tracking.

The engine never captures audio itself. Whatever owns the capture device or
decoder builds a RawFrame each tick and calls process_frame().
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from audio_session_reporter import AudioSessionReporter
from beat_tracker import BeatTracker, BeatTrackerResult
from config import Config
from frames import NormalizedFrame, RawFrame
from frequency_utils import SpectrumShape, extract_bands, spectrum_shape
from logging_utils import log_event, set_log_level
from temporal_smoother import TemporalSmoother


@dataclass
class AnalysisResult:
    """Everything derived from one tick"""
    frame: Optional[NormalizedFrame]  # Smoothed levels, None before the first frame
    beat: BeatTrackerResult
    bands: list = field(default_factory=list)  # Magnitudes at the configured band centers
    shape: Optional[SpectrumShape] = None     # None on ticks without a frame


class AnalysisEngine:
    """
    Per-tick driver for one audio session.

    Owns one BeatTracker and one TemporalSmoother; must be driven by a single
    caller with non-decreasing frame timestamps.
    """

    def __init__(
        self,
        config: Config,
        beat_callback: Optional[Callable[[BeatTrackerResult], None]] = None,
        report_dir: Optional[Path] = None,
    ):
        self.config = config
        self.beat_callback = beat_callback
        set_log_level(config.log_level)

        self.tracker = BeatTracker(config.beat)
        self.config.beat = self.tracker.detector.options
        self.smoother = TemporalSmoother(options=config.processing)
        self.reporter = AudioSessionReporter(report_dir) if report_dir is not None else None

        self._reset_session_stats()
        log_event("INFO", "Engine", "Analysis engine ready",
                  band=f"{config.beat.frequency_range.low:.0f}-{config.beat.frequency_range.high:.0f}Hz",
                  smoothing=self.smoother.smoothing_factor,
                  logarithmic=config.processing.logarithmic)

    def process_frame(self, frame: Optional[RawFrame]) -> AnalysisResult:
        """Analyse one tick. A None frame leaves all state untouched."""
        beat = self.tracker.analyze(frame)
        if frame is None:
            return AnalysisResult(frame=self.smoother.last_frame, beat=beat)

        normalized = self.smoother.process(frame)
        bands = extract_bands(
            frame.frequency_magnitudes,
            self.config.processing.frequency_bands,
            frame.sample_rate,
            frame.buffer_length,
        )
        shape = spectrum_shape(frame.frequency_magnitudes, frame.sample_rate)

        self._update_session_stats(
            volume=normalized.volume,
            band_energy=beat.energy,
            is_active=normalized.is_active,
            is_beat=beat.is_beat,
            tempo=beat.tempo,
            timestamp=frame.timestamp,
        )

        if beat.is_beat and self.beat_callback is not None:
            self.beat_callback(beat)

        return AnalysisResult(frame=normalized, beat=beat, bands=bands, shape=shape)

    def update_beat_options(self, options: Mapping[str, Any]) -> None:
        """Partial beat option update; the engine config follows the detector."""
        self.tracker.update_options(options)
        self.config.beat = self.tracker.detector.options

    def reset(self) -> None:
        """Forget beats, tempo and smoothing history; options are kept."""
        self.tracker.reset()
        self.smoother.reset()

    # ------------------------------------------------------------------
    # Session statistics
    # ------------------------------------------------------------------
    def _reset_session_stats(self) -> None:
        self._session_started_at = time.time()
        self._session_frame_count = 0
        self._session_active_frames = 0
        self._session_beats = 0
        self._session_first_ts: float | None = None
        self._session_last_ts: float | None = None
        self._session_volume_min: float | None = None
        self._session_volume_max: float | None = None
        self._session_band_energy_min: float | None = None
        self._session_band_energy_max: float | None = None
        self._session_tempo_min: int | None = None
        self._session_tempo_max: int | None = None
        self._session_last_tempo = 0
        self._session_volume_sum = 0.0
        self._session_band_energy_sum = 0.0

    def _update_session_stats(self, volume: float, band_energy: float, is_active: bool,
                              is_beat: bool, tempo: int, timestamp: float) -> None:
        self._session_frame_count += 1
        self._session_volume_sum += volume
        self._session_band_energy_sum += band_energy
        if is_active:
            self._session_active_frames += 1
        if is_beat:
            self._session_beats += 1
        if self._session_first_ts is None:
            self._session_first_ts = timestamp
        self._session_last_ts = timestamp
        if self._session_volume_min is None or volume < self._session_volume_min:
            self._session_volume_min = volume
        if self._session_volume_max is None or volume > self._session_volume_max:
            self._session_volume_max = volume
        if self._session_band_energy_min is None or band_energy < self._session_band_energy_min:
            self._session_band_energy_min = band_energy
        if self._session_band_energy_max is None or band_energy > self._session_band_energy_max:
            self._session_band_energy_max = band_energy
        if tempo > 0:
            self._session_last_tempo = tempo
            if self._session_tempo_min is None or tempo < self._session_tempo_min:
                self._session_tempo_min = tempo
            if self._session_tempo_max is None or tempo > self._session_tempo_max:
                self._session_tempo_max = tempo

    def session_summary(self) -> Optional[dict]:
        """Summary of the frames seen since the session started, None if there were none."""
        if self._session_frame_count <= 0:
            return None

        frame_count = float(self._session_frame_count)
        span_ms = max(0.0, (self._session_last_ts or 0.0) - (self._session_first_ts or 0.0))
        return {
            "session_started_at": self._session_started_at,
            "session_ended_at": time.time(),
            "seconds": span_ms / 1000.0,
            "frames": self._session_frame_count,
            "active_frames": self._session_active_frames,
            "volume_low": float(self._session_volume_min or 0.0),
            "volume_high": float(self._session_volume_max or 0.0),
            "volume_mean": self._session_volume_sum / frame_count,
            "band_energy_low": float(self._session_band_energy_min or 0.0),
            "band_energy_high": float(self._session_band_energy_max or 0.0),
            "band_energy_mean": self._session_band_energy_sum / frame_count,
            "beats": self._session_beats,
            "tempo_bpm": self._session_last_tempo,
            "tempo_low": self._session_tempo_min or 0,
            "tempo_high": self._session_tempo_max or 0,
        }

    def finish_session(self) -> Optional[dict]:
        """Log the session summary, write reports if enabled, start a new session."""
        summary = self.session_summary()
        if summary is None:
            return None

        log_event(
            "INFO",
            "Engine",
            "Session levels summary",
            frames=summary["frames"],
            seconds=f"{summary['seconds']:.1f}",
            volume_min=f"{summary['volume_low']:.6f}",
            volume_max=f"{summary['volume_high']:.6f}",
            volume_mean=f"{summary['volume_mean']:.6f}",
            band_energy_min=f"{summary['band_energy_low']:.6f}",
            band_energy_max=f"{summary['band_energy_high']:.6f}",
            band_energy_mean=f"{summary['band_energy_mean']:.6f}",
            beats=summary["beats"],
            bpm=summary["tempo_bpm"],
        )

        if self.reporter is not None and self.config.report_generation_enabled:
            try:
                self.reporter.save_session(summary)
            except OSError as e:
                log_event("ERROR", "Engine", "Failed to write session report", error=e)

        self._reset_session_stats()
        return summary
