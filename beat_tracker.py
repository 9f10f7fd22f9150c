from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from beat_detector import BeatDetector, BeatInfo
from config import BeatDetectionConfig
from frames import RawFrame
from logging_utils import log_event
from tempo_estimator import TempoEstimator


@dataclass
class BeatTrackerResult:
    """BeatInfo plus tempo and the running beat count"""
    is_beat: bool
    energy: float
    average_energy: float
    delta: float
    timestamp: float
    tempo: int = 0            # BPM, 0 until enough beats are known
    beats: int = 0            # Beats seen since construction / last reset


class BeatTracker:
    """One detector feeding one tempo estimator, driven once per tick."""

    def __init__(self, options: Optional[Union[BeatDetectionConfig, Mapping[str, Any]]] = None):
        self.detector = BeatDetector(options)
        self.tempo = TempoEstimator()
        self.beat_count = 0

    def analyze(self, frame: Optional[RawFrame]) -> BeatTrackerResult:
        info: BeatInfo = self.detector.detect(frame)
        if info.is_beat:
            self.tempo.add_beat(info.timestamp)
            self.beat_count += 1

        return BeatTrackerResult(
            is_beat=info.is_beat,
            energy=info.energy,
            average_energy=info.average_energy,
            delta=info.delta,
            timestamp=info.timestamp,
            tempo=self.tempo.get_tempo(),
            beats=self.beat_count,
        )

    def update_options(self, options: Union[BeatDetectionConfig, Mapping[str, Any]]) -> None:
        self.detector.update_options(options)

    def reset(self) -> None:
        self.detector.reset()
        self.tempo.reset()
        self.beat_count = 0
        log_event("INFO", "Beat", "Tracker reset")
