# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for configuration loading and structured logging
"""

import dataclasses
import json
import logging
import pytest

from pipeline_engine.composition.scoring import ScoringWeights
from pipeline_engine.core.config import Config, load_config
from pipeline_engine.core.errors import ConfigurationError, NotFoundError
from pipeline_engine.core.logging import JSONFormatter


class TestLoadConfig:
    """Test load_config"""

    def test_missing_file_returns_defaults(self, temp_dir, monkeypatch):
        for name in ("PIPELINE_ENGINE_PORT", "COMPATIBILITY_API_URL", "EVENT_SINK_URL", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        config = load_config(str(temp_dir / "missing.yaml"))
        assert config == Config()
        assert config.step_timeout == 60.0
        assert config.pipeline_timeout == 300.0

    def test_reads_nested_sections(self, temp_dir):
        path = temp_dir / "engine.yaml"
        path.write_text(
            "paths:\n"
            "  data: /srv/engine\n"
            "execution:\n"
            "  step_timeout: 5\n"
            "composition:\n"
            "  reference_max_price: 2000000\n"
            "  weights:\n"
            "    compatibility: 0.6\n"
        )

        config = load_config(str(path))

        assert config.catalog_path == "/srv/engine/catalog"
        assert config.step_timeout == 5
        assert config.weight_compatibility == 0.6
        assert config.weight_price == 0.3
        assert ScoringWeights.from_config(config).reference_max_price == 2_000_000

    def test_zero_values_are_kept(self, temp_dir):
        path = temp_dir / "engine.yaml"
        path.write_text(
            "composition:\n"
            "  materialize_threshold: 0\n"
            "  weights:\n"
            "    compatibility: 1\n"
            "    price: 0\n"
            "    reliability: 0\n"
            "suggestions:\n"
            "  min_score: 0\n"
            "events:\n"
            "  sink_url:\n"
        )

        config = load_config(str(path))

        assert config.materialize_threshold == 0
        assert (config.weight_compatibility, config.weight_price, config.weight_reliability) == (1, 0, 0)
        assert config.suggest_min_score == 0
        assert ScoringWeights.from_config(config).price == 0

    def test_null_values_fall_back_to_defaults(self, temp_dir):
        path = temp_dir / "engine.yaml"
        path.write_text("execution:\n  step_timeout:\nlogging:\n")

        config = load_config(str(path))

        assert config.step_timeout == 60.0
        assert config.log_format == "json"

    def test_env_overrides(self, temp_dir, monkeypatch):
        monkeypatch.setenv("EVENT_SINK_URL", "http://sink.test")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        config = load_config(str(temp_dir / "missing.yaml"))
        assert config.event_sink_url == "http://sink.test"
        assert config.log_level == "DEBUG"

    def test_invalid_yaml(self, temp_dir):
        path = temp_dir / "engine.yaml"
        path.write_text("service: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_config_is_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            Config().step_timeout = 1


class TestLogging:
    """Test JSONFormatter and error serialization"""

    def test_json_formatter_includes_extra_fields(self):
        record = logging.LogRecord("pipeline_engine.test", logging.INFO, __file__, 1, "step done", None, None)
        record.pipelineId = "p1"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "step done"
        assert data["level"] == "INFO"
        assert data["pipelineId"] == "p1"

    def test_error_to_dict(self):
        error = NotFoundError("Pipeline", "p1")
        assert error.to_dict()["status_code"] == 404
        assert error.to_dict()["message"] == "Pipeline not found: p1"
