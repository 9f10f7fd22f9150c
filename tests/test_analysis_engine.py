import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import numpy as np

from analysis_engine import AnalysisEngine
from config import Config
from errors import ValidationError
from frames import RawFrame

N_BINS = 1024


def pulse_frame(loud, timestamp):
    magnitudes = np.full(N_BINS, 10.0)
    magnitudes[2:7] = 230 if loud else 20
    samples = np.full(N_BINS, 128.0)
    samples[::2] = 160 if loud else 132
    return RawFrame(magnitudes, samples, 44100, timestamp)


def drive(engine, pulses=6, period_ms=500.0):
    results = []
    t = 0.0
    while t < pulses * period_ms:
        results.append(engine.process_frame(pulse_frame(t % period_ms == 0, t)))
        t += 20.0
    return results


class TestAnalysisEngine(unittest.TestCase):
    def test_process_frame_populates_all_stages(self):
        engine = AnalysisEngine(Config())
        result = engine.process_frame(pulse_frame(True, 0.0))

        self.assertTrue(result.beat.is_beat)
        self.assertEqual(len(result.bands), 10)
        self.assertEqual(result.bands[0], 230.0)  # 60 Hz -> bin 3
        self.assertGreater(result.shape.centroid, 0.0)
        self.assertAlmostEqual(float(result.frame.frequency_levels.max()), 1.0)

    def test_beat_callback_and_tempo(self):
        beats = []
        engine = AnalysisEngine(Config(), beat_callback=beats.append)
        results = drive(engine)

        self.assertEqual(len(beats), 6)
        self.assertEqual(results[-1].beat.tempo, 120)
        self.assertEqual(beats[-1].beats, 6)

    def test_none_frame_returns_last_smoothed_frame(self):
        engine = AnalysisEngine(Config())
        first = engine.process_frame(pulse_frame(False, 0.0))
        idle = engine.process_frame(None)

        self.assertIs(idle.frame, first.frame)
        self.assertFalse(idle.beat.is_beat)
        self.assertIsNone(idle.shape)
        self.assertEqual(idle.bands, [])

    def test_invalid_frame_raises(self):
        engine = AnalysisEngine(Config())
        with self.assertRaises(ValidationError):
            engine.process_frame(RawFrame(np.zeros(8), np.zeros(6), 44100, 0.0))

    def test_update_beat_options_syncs_config(self):
        cfg = Config()
        engine = AnalysisEngine(cfg)
        engine.update_beat_options({'frequency_range': {'high': 150}})
        self.assertEqual(cfg.beat.frequency_range.high, 150)
        self.assertEqual(cfg.beat.frequency_range.low, 60.0)

    def test_reset_clears_tracking(self):
        engine = AnalysisEngine(Config())
        drive(engine)
        engine.reset()
        self.assertEqual(engine.tracker.beat_count, 0)
        self.assertIsNone(engine.smoother.last_frame)

    def test_session_summary_logs_ranges(self):
        engine = AnalysisEngine(Config())
        engine._reset_session_stats()
        engine._update_session_stats(volume=0.10, band_energy=0.20, is_active=True,
                                     is_beat=True, tempo=0, timestamp=0.0)
        engine._update_session_stats(volume=0.40, band_energy=0.70, is_active=True,
                                     is_beat=False, tempo=118, timestamp=1500.0)

        with mock.patch("analysis_engine.log_event") as log_event_mock:
            summary = engine.finish_session()

        self.assertTrue(log_event_mock.called)
        _, kwargs = log_event_mock.call_args
        self.assertEqual(kwargs["volume_min"], "0.100000")
        self.assertEqual(kwargs["volume_max"], "0.400000")
        self.assertEqual(kwargs["volume_mean"], "0.250000")
        self.assertEqual(kwargs["band_energy_mean"], "0.450000")
        self.assertEqual(kwargs["beats"], 1)
        self.assertEqual(kwargs["bpm"], 118)
        self.assertAlmostEqual(summary["seconds"], 1.5)

    def test_session_summary_no_frames_no_log(self):
        engine = AnalysisEngine(Config())
        with mock.patch("analysis_engine.log_event") as log_event_mock:
            self.assertIsNone(engine.finish_session())
        log_event_mock.assert_not_called()

    def test_finish_session_writes_reports(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            report_dir = Path(tmpdir)
            engine = AnalysisEngine(Config(), report_dir=report_dir)
            drive(engine)
            engine.finish_session()

            json_path = report_dir / "analysis_session_report.json"
            csv_path = report_dir / "analysis_session_report.csv"
            self.assertTrue(json_path.exists())
            self.assertTrue(csv_path.exists())

            with open(json_path, "r", encoding="utf-8") as f:
                latest = json.load(f)["latest"]
            self.assertEqual(latest["beats"], 6)
            self.assertEqual(latest["tempo_bpm"], 120)
            self.assertEqual(latest["frames"], 150)

    def test_reports_disabled_by_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg = Config()
            cfg.report_generation_enabled = False
            engine = AnalysisEngine(cfg, report_dir=Path(tmpdir))
            drive(engine, pulses=1)
            engine.finish_session()
            self.assertFalse((Path(tmpdir) / "analysis_session_report.json").exists())


if __name__ == "__main__":
    unittest.main()
