import pathlib
import sys
import tempfile
import unittest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from edfscope.config import (  # noqa: E402
    EdfScopeConfig,
    FilterConfig,
    LinearBinned,
    LogBinned,
    PlaybackConfig,
    SpectralConfig,
    config_from_mapping,
    load_config,
)
from edfscope.config.runtime import save_config  # noqa: E402


class PlaybackConfigTest(unittest.TestCase):
    def test_defaults_are_real_time(self):
        cfg = PlaybackConfig()
        self.assertEqual(cfg.effective_speed, 1.0)
        self.assertAlmostEqual(cfg.tick_interval_seconds, 1.0 / 30.0)
        self.assertEqual(cfg.max_buffer_seconds, 60.0)

    def test_sanitized_replaces_invalid_values(self):
        cfg = PlaybackConfig(playback_speed=-2.0, tick_hz=0.0, max_buffer_seconds=float("nan"))
        clean = cfg.sanitized()
        self.assertEqual(clean.playback_speed, 1.0)
        self.assertEqual(clean.tick_hz, 30.0)
        self.assertEqual(clean.max_buffer_seconds, 60.0)

    def test_from_mapping(self):
        cfg = PlaybackConfig.from_mapping({"timebase_mm_per_sec": 60, "playback_speed": "2"})
        self.assertEqual(cfg.effective_speed, 4.0)


class SpectralConfigTest(unittest.TestCase):
    def test_default_is_compressed(self):
        cfg = SpectralConfig()
        self.assertEqual(cfg.variant, "compressed")
        self.assertEqual(cfg.binning, LogBinned(num_bins=64))

    def test_resolution_selects_dense_variant(self):
        cfg = SpectralConfig.from_mapping({"freq_resolution_hz": 0.25})
        self.assertEqual(cfg.variant, "dense")
        self.assertEqual(cfg.binning, LinearBinned(0.25))

        by_name = SpectralConfig.from_mapping({"variant": "dsa"})
        self.assertEqual(by_name.binning, LinearBinned(0.5))

    def test_invalid_values_raise(self):
        with self.assertRaises(ValueError):
            SpectralConfig(window_seconds=0.0)
        with self.assertRaises(ValueError):
            LogBinned(num_bins=1)
        with self.assertRaises(ValueError):
            LinearBinned(resolution_hz=0.0)


class RuntimeConfigTest(unittest.TestCase):
    def test_nested_blocks_and_unknown_keys(self):
        cfg = config_from_mapping(
            {
                "playback": {"tick_hz": 60},
                "filters": {"notch_hz": 50},
                "spectral": {"num_freq_bins": 32, "max_freq_hz": 40},
                "display": {"theme": "dark"},
            }
        )
        self.assertEqual(cfg.playback.tick_hz, 60.0)
        self.assertEqual(cfg.filters, FilterConfig(1.0, 30.0, 50.0))
        self.assertEqual(cfg.spectral.binning, LogBinned(num_bins=32))
        self.assertEqual(cfg.spectral.max_freq_hz, 40.0)

    def test_missing_file_gives_defaults(self):
        cfg = load_config("/nonexistent/edfscope.yaml")
        self.assertEqual(cfg.filters, FilterConfig())
        self.assertEqual(cfg.spectral, SpectralConfig())

    def test_yaml_round_trip(self):
        original = EdfScopeConfig(
            playback=PlaybackConfig(timebase_mm_per_sec=15.0),
            filters=FilterConfig(0.5, 35.0, 0.0),
            spectral=SpectralConfig.dense(resolution_hz=1.0),
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "nested" / "session.yaml"
            save_config(path, original)
            loaded = load_config(path)

        self.assertEqual(loaded.playback.timebase_mm_per_sec, 15.0)
        self.assertEqual(loaded.filters, original.filters)
        self.assertEqual(loaded.spectral, original.spectral)

    def test_non_mapping_yaml_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = pathlib.Path(tmpdir) / "bad.yaml"
            path.write_text("- 1\n- 2\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_config(path)


if __name__ == "__main__":
    unittest.main()
