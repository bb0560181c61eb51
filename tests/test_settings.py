"""Tests for configuration loading, settings and the range table."""

import logging
from types import MappingProxyType

import pytest
import yaml

from config import ConfigurationManager, get_config
from agrilab.model_inference.extraction_result import ValidationRange
from agrilab.pipeline import ExtractionSettings
from agrilab.postprocessor.ranges import DEFAULT_VALIDATION_RANGES, build_range_table
from agrilab.utils.exceptions import ConfigurationError
from agrilab.utils.logger import ColoredFormatter, get_logger, parse_level, set_level, setup_logger


@pytest.fixture
def custom_config(tmp_path):
    """Load a configuration file written by the test."""
    def load(data: dict) -> ConfigurationManager:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        ConfigurationManager.reset()
        return ConfigurationManager(str(path))
    return load


class TestConfigurationManager:
    def test_dot_notation(self):
        assert get_config("vision.model") == "gpt-4o"
        assert get_config("ocr.tesseract.lang") == "eng"

    def test_missing_key_default(self):
        assert get_config("vision.nope", "fallback") == "fallback"

    def test_singleton(self):
        assert ConfigurationManager() is ConfigurationManager()

    def test_missing_file(self, tmp_path):
        ConfigurationManager.reset()
        with pytest.raises(FileNotFoundError):
            ConfigurationManager(str(tmp_path / "absent.yaml"))

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yaml"
        path.write_text("vision:\n  model: local-vlm\n", encoding="utf-8")
        monkeypatch.setenv("AGRILAB_CONFIG", str(path))
        ConfigurationManager.reset()

        assert get_config("vision.model") == "local-vlm"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AGRILAB_OCR_LANG", "eng+spa")
        ConfigurationManager.reset()

        assert get_config("ocr.tesseract.lang") == "eng+spa"
        assert get_config("ocr.tesseract.psm") == 3

    def test_set_creates_sections(self):
        config = ConfigurationManager()
        config.set("vision.extra.flag", True)
        assert config.get("vision.extra.flag") is True
        assert config.get("vision.model") == "gpt-4o"

    def test_section_is_a_copy(self):
        config = ConfigurationManager()
        section = config.section("confidence")
        section["regex"] = 0.1

        assert config.get("confidence.regex") == 0.6
        assert config.section("absent") == {}

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        ConfigurationManager.reset()
        with pytest.raises(ValueError):
            ConfigurationManager(str(path))


class TestExtractionSettings:
    def test_defaults_from_settings_yaml(self):
        settings = ExtractionSettings.from_config()

        assert settings.vision_timeout == 30.0
        assert settings.ocr_timeout == 60.0
        assert settings.default_result_confidence == 0.8
        assert settings.default_parameter_confidence == 0.7
        assert settings.out_of_range_confidence_cap == 0.5
        assert settings.regex_confidence == 0.6
        assert settings.ocr_regex_confidence == 0.5
        assert settings.regex_only_confidence == 0.3
        assert settings.no_text_sentinel == "No text detected in image"
        assert settings.validation_ranges is DEFAULT_VALIDATION_RANGES

    def test_overrides(self, custom_config):
        custom_config({
            "vision": {"timeout_seconds": 10, "enabled": False},
            "confidence": {"regex": 0.55},
            "validation": {"ranges": {"soil": {"CEC": [2, 40], "pH": [4, 8]}}},
        })

        settings = ExtractionSettings.from_config()

        assert settings.vision_timeout == 10.0
        assert settings.vision_enabled is False
        assert settings.regex_confidence == 0.55
        assert settings.ocr_timeout == 60.0
        assert settings.validation_ranges["soil"]["CEC"] == ValidationRange(2.0, 40.0)
        assert settings.validation_ranges["soil"]["pH"] == ValidationRange(4.0, 8.0)
        assert settings.validation_ranges["leaf"] == DEFAULT_VALIDATION_RANGES["leaf"]

    def test_invalid_confidence(self):
        with pytest.raises(ConfigurationError):
            ExtractionSettings(out_of_range_confidence_cap=1.5)

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError):
            ExtractionSettings(vision_timeout=0)

    def test_non_numeric_config_value(self, custom_config):
        custom_config({"ocr": {"timeout_seconds": "soon"}})
        with pytest.raises(ConfigurationError, match="ocr.timeout_seconds"):
            ExtractionSettings.from_config()

    def test_default_range_table(self):
        assert ExtractionSettings().validation_ranges is DEFAULT_VALIDATION_RANGES

    def test_settings_are_frozen(self):
        settings = ExtractionSettings()
        with pytest.raises(AttributeError):
            settings.vision_timeout = 1.0


class TestRangeTable:
    def test_default_table(self):
        assert DEFAULT_VALIDATION_RANGES["soil"]["P"] == ValidationRange(1.0, 200.0)
        assert DEFAULT_VALIDATION_RANGES["leaf"]["Mg"] == ValidationRange(0.1, 0.8)
        assert "pH" not in DEFAULT_VALIDATION_RANGES["leaf"]

    def test_table_is_read_only(self):
        assert isinstance(DEFAULT_VALIDATION_RANGES, MappingProxyType)
        with pytest.raises(TypeError):
            DEFAULT_VALIDATION_RANGES["soil"]["pH"] = ValidationRange(0.0, 14.0)

    def test_overrides_do_not_touch_defaults(self):
        build_range_table({"leaf": {"N": [1.0, 5.0]}})
        assert DEFAULT_VALIDATION_RANGES["leaf"]["N"] == ValidationRange(1.5, 4.0)

    @pytest.mark.parametrize("overrides", [
        {"water": {"pH": [6, 8]}},
        {"soil": {"pH": [9, 3]}},
        {"soil": {"pH": "3-9"}},
        {"soil": {"pH": [3]}},
    ])
    def test_invalid_overrides(self, overrides):
        with pytest.raises(ConfigurationError):
            build_range_table(overrides)


class TestLogging:
    def test_get_logger_namespace(self):
        assert get_logger("main").name == "agrilab.main"
        assert get_logger("agrilab.pipeline").name == "agrilab.pipeline"
        assert get_logger("agrilabx").name == "agrilab.agrilabx"

    def test_parse_level(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level(logging.ERROR) == logging.ERROR
        with pytest.raises(ValueError):
            parse_level("loud")

    def test_setup_and_set_level(self, tmp_path):
        log_file = tmp_path / "logs" / "agrilab.log"
        app_logger = setup_logger(level="INFO", log_file=log_file, colorize=False)
        assert len(app_logger.handlers) == 2
        assert app_logger.propagate is False

        set_level("DEBUG")
        assert app_logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in app_logger.handlers)

        get_logger("tests").warning("range check")
        for handler in app_logger.handlers:
            handler.flush()
        assert "range check" in log_file.read_text(encoding="utf-8")

    def test_colored_formatter_restores_record(self):
        formatter = ColoredFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("agrilab", logging.WARNING, __file__, 1, "msg", None, None)

        output = formatter.format(record)

        assert "WARNING" in output and "msg" in output
        assert record.levelname == "WARNING"
