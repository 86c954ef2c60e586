"""
Tests for application settings.
"""
import pytest
from cloudfs.core.config import Settings
from pydantic import ValidationError


def make_settings(**env):
    return Settings(_env_file=None, **env)


class TestSettings:
    """Test cases for Settings parsing."""

    def test_choices_are_case_insensitive(self):
        settings = make_settings(STORAGE_PROVIDER="S3", ENVIRONMENT="Development", LOG_FORMAT="CONSOLE")

        assert settings.storage_provider == "s3"
        assert settings.is_development
        assert settings.log_format == "console"

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(STORAGE_PROVIDER="ftp")

    def test_log_level_normalized(self):
        assert make_settings(LOG_LEVEL="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(LOG_LEVEL="chatty")

    def test_part_size_below_s3_minimum_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(STORAGE_UPLOAD_PART_SIZE=1024)

    def test_zero_timeout_disables_it(self):
        options = make_settings(STORAGE_CALL_TIMEOUT_SECONDS=0).storage_driver_options

        assert options["call_timeout"] is None
        assert options["upload_part_size"] == 10 * 1024 * 1024
