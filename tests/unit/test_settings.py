"""
Tests for execution settings persistence.
"""

import json

import pytest

from creative_canvas.core.settings import ExecutionSettings, load_settings, save_settings


class TestExecutionSettings:
    """Tests for ExecutionSettings and its JSON file."""

    def test_defaults(self):
        settings = ExecutionSettings()

        assert settings.poll_interval == 2.0
        assert settings.failure_policy == "skip-dependents"
        assert settings.max_concurrent_jobs == 0

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config" / "settings.json"
        settings = ExecutionSettings(poll_interval=0.5, failure_policy="abort", api_key="k")

        save_settings(settings, path)
        loaded = load_settings(path)

        assert loaded == settings

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "nope.json") == ExecutionSettings()

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{broken")

        assert load_settings(path) == ExecutionSettings()

    def test_invalid_values_give_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"failure_policy": "retry-forever"}))

        assert load_settings(path) == ExecutionSettings()

    def test_unknown_keys_ignored(self):
        settings = ExecutionSettings.from_dict({"job_timeout": 30, "theme": "dark"})

        assert settings.job_timeout == 30

    def test_bad_policy_rejected(self):
        with pytest.raises(ValueError):
            ExecutionSettings(failure_policy="retry-forever")

    def test_bad_timeout_rejected(self):
        with pytest.raises(ValueError):
            ExecutionSettings(job_timeout=0)
