import json
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from rcv.core.settings import (
    PROJECT_SETTINGS_FILENAME,
    AppSettings,
    apply_project_settings,
    env_bool,
    env_float,
    settings_path,
)
from rcv.geom import layout_runtime_log
from rcv.geom.layout import DanglingParent, Unreachable

RCV_ENV = ("RCV_CANVAS_THEME", "RCV_WHEEL_SENSITIVITY", "RCV_LEVEL_LABELS", "RCV_CANVAS_OPENGL")


class _TempHome(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.home = Path(self._tmp.name)
        env = {k: v for k, v in os.environ.items() if k not in RCV_ENV}
        env["HOME"] = str(self.home)
        self._env = mock.patch.dict(os.environ, env, clear=True)
        self._env.start()

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()


class AppSettingsTests(_TempHome):
    def test_defaults_without_file(self):
        s = AppSettings.load()
        self.assertEqual(s.canvas_theme, "light")
        self.assertEqual(s.wheel_sensitivity, 1.0)
        self.assertTrue(s.show_level_labels)

    def test_round_trip(self):
        s = AppSettings(canvas_theme="dark", wheel_sensitivity=2.5, show_level_labels=False, ui_splitter_b64="AAA=")
        self.assertTrue(s.save())
        self.assertTrue(settings_path().is_file())
        self.assertEqual(settings_path().parent, self.home / ".rcv")

        loaded = AppSettings.load()
        self.assertEqual(loaded.canvas_theme, "dark")
        self.assertEqual(loaded.wheel_sensitivity, 2.5)
        self.assertFalse(loaded.show_level_labels)
        self.assertEqual(loaded.ui_splitter_b64, "AAA=")

    def test_garbage_values_are_coerced(self):
        settings_path().parent.mkdir(parents=True)
        settings_path().write_text(
            json.dumps({"canvas_theme": "neon", "wheel_sensitivity": "mucho"}), encoding="utf-8"
        )
        s = AppSettings.load()
        self.assertEqual(s.canvas_theme, "light")
        self.assertEqual(s.wheel_sensitivity, 1.0)

    def test_broken_json_falls_back(self):
        settings_path().parent.mkdir(parents=True)
        settings_path().write_text("{no es json", encoding="utf-8")
        self.assertEqual(AppSettings.load().canvas_theme, "light")

    def test_env_defaults_apply_before_user_file(self):
        os.environ["RCV_CANVAS_THEME"] = "mid"
        os.environ["RCV_WHEEL_SENSITIVITY"] = "9"
        s = AppSettings.load()
        self.assertEqual(s.canvas_theme, "mid")
        self.assertEqual(s.wheel_sensitivity, 5.0)


class ProjectSettingsTests(_TempHome):
    def _write(self, data):
        p = self.home / PROJECT_SETTINGS_FILENAME
        p.write_text(json.dumps(data), encoding="utf-8")
        return p

    def test_maps_keys_to_env(self):
        self._write({"ui": {"canvas": {"theme": "Dark", "wheel_sensitivity": 1.5, "level_labels": False, "opengl": True}}})
        sub = self.home / "a" / "b"
        sub.mkdir(parents=True)
        applied = apply_project_settings(start=sub)
        self.assertEqual(applied["ui.canvas.theme"], "dark")
        self.assertEqual(os.environ["RCV_CANVAS_THEME"], "dark")
        self.assertEqual(os.environ["RCV_WHEEL_SENSITIVITY"], "1.5")
        self.assertEqual(os.environ["RCV_LEVEL_LABELS"], "0")
        self.assertEqual(os.environ["RCV_CANVAS_OPENGL"], "1")

    def test_existing_env_wins_by_default(self):
        self._write({"ui": {"canvas": {"theme": "dark"}}})
        os.environ["RCV_CANVAS_THEME"] = "mid"
        apply_project_settings(start=self.home)
        self.assertEqual(os.environ["RCV_CANVAS_THEME"], "mid")
        apply_project_settings(start=self.home, prefer_env=False)
        self.assertEqual(os.environ["RCV_CANVAS_THEME"], "dark")

    def test_out_of_range_values_ignored(self):
        self._write({"ui": {"canvas": {"theme": "neon", "wheel_sensitivity": 99}}})
        self.assertEqual(apply_project_settings(start=self.home), {})
        self.assertNotIn("RCV_CANVAS_THEME", os.environ)

    def test_invalid_file_is_logged(self):
        (self.home / PROJECT_SETTINGS_FILENAME).write_text("[", encoding="utf-8")
        with self.assertLogs("rcv.core.settings", level=logging.WARNING):
            self.assertEqual(apply_project_settings(start=self.home), {})


class EnvHelperTests(_TempHome):
    def test_env_float(self):
        os.environ["X_F"] = " 2.5 "
        self.assertEqual(env_float("X_F", 1.0), 2.5)
        os.environ["X_F"] = "nan?"
        self.assertEqual(env_float("X_F", 1.0), 1.0)
        os.environ["X_F"] = "-4"
        self.assertEqual(env_float("X_F", 1.0, min_value=0.1), 0.1)

    def test_env_bool(self):
        self.assertTrue(env_bool("X_B", True))
        os.environ["X_B"] = "off"
        self.assertFalse(env_bool("X_B", True))
        os.environ["X_B"] = "quizás"
        self.assertTrue(env_bool("X_B", True))


class LayoutIssueLogTests(unittest.TestCase):
    def setUp(self):
        layout_runtime_log.reset_seen()

    def tearDown(self):
        layout_runtime_log.reset_seen()

    def test_each_issue_logged_once_per_scope(self):
        issues = [DanglingParent("a", "ghost"), Unreachable("b")]
        with self.assertLogs("rcv.geom.layout_runtime_log", level=logging.WARNING) as cm:
            self.assertEqual(layout_runtime_log.log_issues_once("conv-1", issues), 2)
            self.assertEqual(layout_runtime_log.log_issues_once("conv-1", issues), 0)
            self.assertEqual(layout_runtime_log.log_issues_once("conv-2", issues[:1]), 1)
        self.assertEqual(len(cm.output), 3)


if __name__ == "__main__":
    unittest.main()
