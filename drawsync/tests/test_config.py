import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import drawsync.config as config_module
from drawsync.config import ClientSettings, WheelSettings


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        config_module.load_config.cache_clear()

    def tearDown(self) -> None:
        config_module.load_config.cache_clear()

    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {"DRAWSYNC_API_BASE": "http://draw.test"}, clear=True):
            settings = config_module.load_from_environment()

        self.assertEqual(settings.reconnect_delay_seconds, 1.5)
        self.assertEqual(settings.draw_deadline_seconds, 15)
        self.assertEqual(settings.wheel, WheelSettings(whole_turns=6, jitter_ratio=0.15))
        self.assertIsNone(settings.host_password)
        self.assertEqual(settings.events_url, "http://draw.test/events")

    def test_missing_api_base_raises(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(RuntimeError):
                config_module.load_from_environment()

    def test_environment_overrides(self) -> None:
        env = {
            "DRAWSYNC_API_BASE": "http://draw.test/",
            "DRAWSYNC_EVENTS_PATH": "/stream",
            "DRAWSYNC_HOST_PASSWORD": "clave",
            "DRAWSYNC_DRAW_DEADLINE_SECONDS": "20",
            "DRAWSYNC_RECONNECT_DELAY_SECONDS": "2.5",
            "WHEEL__WHOLE_TURNS": "3",
            "WHEEL__JITTER_RATIO": "0.1",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = config_module.load_from_environment()

        self.assertEqual(settings.events_url, "http://draw.test/stream")
        self.assertEqual(settings.api_url("/api/state"), "http://draw.test/api/state")
        self.assertEqual(settings.host_password, "clave")
        self.assertEqual(settings.draw_deadline_seconds, 20)
        self.assertEqual(settings.reconnect_delay_seconds, 2.5)
        self.assertEqual(settings.wheel.whole_turns, 3)

    def test_invalid_wheel_values_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WheelSettings(whole_turns=0)
        with self.assertRaises(ValueError):
            WheelSettings(jitter_ratio=0.5)

    def test_load_config_reads_dotenv_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = Path(tmpdir) / "viewer.env"
            env_path.write_text("DRAWSYNC_API_BASE=http://from-dotenv.test\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {}, clear=True):
                settings = config_module.load_config(str(env_path))

        self.assertEqual(settings.api_base, "http://from-dotenv.test")

    def test_copy_replaces_fields(self) -> None:
        settings = ClientSettings(api_base="http://draw.test")
        updated = settings.copy(draw_deadline_seconds=1)
        self.assertEqual(updated.draw_deadline_seconds, 1)
        self.assertEqual(settings.draw_deadline_seconds, 15)


if __name__ == "__main__":
    unittest.main()
