#!/usr/bin/env python3
"""Tests for environment-driven configuration."""

import logging

import pytest

from claude_code_flatten.config import (
    DEFAULT_ORPHAN_RECOVERY_RATIO,
    DEFAULT_TASK_GROUP_WINDOW_MS,
    ORPHAN_RATIO_ENV,
    TASK_WINDOW_ENV,
    FlattenConfig,
)


class TestFlattenConfig:
    """Tests for FlattenConfig.from_env."""

    def test_defaults(self):
        config = FlattenConfig.from_env({})
        assert config.task_group_window_ms == DEFAULT_TASK_GROUP_WINDOW_MS == 2000
        assert config.orphan_recovery_ratio == DEFAULT_ORPHAN_RECOVERY_RATIO == 0.9

    def test_overrides(self):
        config = FlattenConfig.from_env({TASK_WINDOW_ENV: "500", ORPHAN_RATIO_ENV: "1.0"})
        assert config.task_group_window_ms == 500
        assert config.orphan_recovery_ratio == 1.0

    def test_blank_values_use_defaults(self):
        config = FlattenConfig.from_env({TASK_WINDOW_ENV: "  ", ORPHAN_RATIO_ENV: ""})
        assert config == FlattenConfig()

    def test_invalid_values_warn_and_use_defaults(
        self, caplog: pytest.LogCaptureFixture
    ):
        with caplog.at_level(logging.WARNING):
            config = FlattenConfig.from_env(
                {TASK_WINDOW_ENV: "soon", ORPHAN_RATIO_ENV: "most"}
            )

        assert config == FlattenConfig()
        assert TASK_WINDOW_ENV in caplog.text
        assert ORPHAN_RATIO_ENV in caplog.text

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(TASK_WINDOW_ENV, "750")
        assert FlattenConfig.from_env().task_group_window_ms == 750

    def test_frozen(self):
        config = FlattenConfig()
        with pytest.raises(AttributeError):
            config.task_group_window_ms = 1  # type: ignore[misc]
