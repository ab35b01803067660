"""Unit tests for configuration resolution and precedence.

These tests verify the core behaviors of the configuration module:
- Precedence: programmatic > environment > project file > home file > defaults.
- Profiles layered over the base section of either file.
- Validation errors surfacing as ``ConfigurationError``.
"""

import os

import pytest

from codescope.client.rate_limiter import RateLimitRule
from codescope.config import (
    ConfigFileError,
    ConfigurationError,
    FrozenConfig,
    get_effective_profile,
    list_available_profiles,
    resolve_config,
    validate_profile,
)
from codescope.core.types import Capability

pytestmark = pytest.mark.unit


def write_project(project, body: str) -> None:
    (project / "pyproject.toml").write_text(
        "[project]\nname = 'x'\n\n[tool.codescope]\n" + body
    )


def write_home(body: str) -> None:
    path = os.environ["CODESCOPE_CONFIG_HOME"]
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(body)


class TestDefaults:
    def test_defaults_without_any_source(self, isolated_project):
        config = resolve_config()
        assert config.cache_max_size == 50
        assert config.cache_ttl_minutes == 30
        assert config.max_retries == 3
        assert config.request_deadline_ms == 60000
        assert config.default_provider == "chat-completions"
        assert config.use_real_api is False
        assert set(config.origin.values()) == {"default"}

    def test_default_rate_limits(self, isolated_project):
        frozen = resolve_config().to_frozen()
        assert frozen.rate_limits["explain"] == RateLimitRule(10, 60)
        assert frozen.rate_limits["generate-diagram"] == RateLimitRule(5, 60)
        assert frozen.rate_limits["security-scan"] == RateLimitRule(2, 3600)


class TestPrecedence:
    def test_home_file_over_defaults(self, isolated_project):
        write_home("max_retries = 5\n")
        config = resolve_config()
        assert config.max_retries == 5
        assert config.origin["max_retries"] == "file"

    def test_project_file_over_home_file(self, isolated_project):
        write_home("max_retries = 5\ncache_max_size = 7\n")
        write_project(isolated_project, "max_retries = 1\n")
        config = resolve_config()
        assert config.max_retries == 1
        assert config.cache_max_size == 7

    def test_environment_over_files(self, isolated_project, monkeypatch):
        write_project(isolated_project, "max_retries = 1\n")
        monkeypatch.setenv("CODESCOPE_MAX_RETRIES", "4")
        config = resolve_config()
        assert config.max_retries == 4
        assert config.origin["max_retries"] == "env"

    def test_programmatic_over_everything(self, isolated_project, monkeypatch):
        write_project(isolated_project, "max_retries = 1\n")
        monkeypatch.setenv("CODESCOPE_MAX_RETRIES", "4")
        config = resolve_config({"max_retries": 0})
        assert config.max_retries == 0
        assert config.origin["max_retries"] == "programmatic"

    def test_unknown_programmatic_fields_are_ignored(self, isolated_project):
        config = resolve_config({"not_a_field": 1})
        assert "not_a_field" not in config.values

    def test_rate_limits_from_file_and_env(self, isolated_project, monkeypatch):
        write_project(
            isolated_project,
            "[tool.codescope.rate_limits.explain]\nlimit = 20\nwindow_seconds = 30\n",
        )
        assert resolve_config().to_frozen().rate_limits["explain"] == RateLimitRule(20, 30)

        monkeypatch.setenv(
            "CODESCOPE_RATE_LIMITS", '{"explain": {"limit": 1, "window_seconds": 5}}'
        )
        assert resolve_config().to_frozen().rate_limits["explain"] == RateLimitRule(1, 5)

    def test_rate_limit_pairs_accepted(self, isolated_project):
        config = resolve_config({"rate_limits": {"explain": [3, 10]}})
        assert config.to_frozen().rate_limits == {"explain": RateLimitRule(3, 10)}


class TestProfiles:
    def test_profile_layers_over_base(self, isolated_project):
        write_project(
            isolated_project,
            "max_retries = 1\ncache_max_size = 9\n\n"
            "[tool.codescope.profiles.production]\nmax_retries = 6\n",
        )
        config = resolve_config(profile="production")
        assert config.max_retries == 6
        assert config.cache_max_size == 9

    def test_profile_from_environment(self, isolated_project, monkeypatch):
        write_home("[profiles.fast]\nrequest_deadline_ms = 500\n")
        monkeypatch.setenv("CODESCOPE_PROFILE", "fast")
        assert get_effective_profile() == "fast"
        assert resolve_config().request_deadline_ms == 500

    def test_profile_missing_from_one_file_is_fine(self, isolated_project):
        write_home("[profiles.fast]\nmax_retries = 2\n")
        write_project(isolated_project, "cache_max_size = 3\n")
        config = resolve_config(profile="fast")
        assert config.max_retries == 2
        assert config.cache_max_size == 3

    def test_undeclared_profile_keeps_base_sections(self, isolated_project):
        write_home("max_retries = 5\n\n[profiles.fast]\nmax_retries = 2\n")
        write_project(
            isolated_project,
            "cache_max_size = 4\n\n[tool.codescope.profiles.ci]\ncache_max_size = 1\n",
        )
        config = resolve_config(profile="staging")
        assert config.max_retries == 5
        assert config.cache_max_size == 4
        assert config.origin["cache_max_size"] == "file"

    def test_list_and_validate_profiles(self, isolated_project):
        write_home("[profiles.home_only]\nmax_retries = 2\n")
        write_project(
            isolated_project, "[tool.codescope.profiles.ci]\nmax_retries = 0\n"
        )
        assert list_available_profiles() == {"project": ["ci"], "home": ["home_only"]}
        assert validate_profile("ci") == {"project": True, "home": False}
        with pytest.raises(ConfigurationError, match="not found"):
            validate_profile("nope")


class TestValidation:
    def test_invalid_programmatic_value(self, isolated_project):
        with pytest.raises(ConfigurationError):
            resolve_config({"cache_max_size": 0})

    def test_invalid_environment_value(self, isolated_project, monkeypatch):
        monkeypatch.setenv("CODESCOPE_MAX_RETRIES", "many")
        with pytest.raises(ConfigurationError, match="CODESCOPE_MAX_RETRIES"):
            resolve_config()

    def test_malformed_toml(self, isolated_project):
        (isolated_project / "pyproject.toml").write_text("[tool.codescope\n")
        with pytest.raises(ConfigFileError, match="pyproject.toml"):
            resolve_config()

    def test_config_file_error_is_a_configuration_error(self):
        assert issubclass(ConfigFileError, ConfigurationError)


class TestEnvFile:
    def test_env_file_is_loaded(self, isolated_project, tmp_path, monkeypatch):
        # Registers the variable with monkeypatch so teardown removes what dotenv sets.
        monkeypatch.setenv("CODESCOPE_CACHE_TTL_MINUTES", "1")
        monkeypatch.delenv("CODESCOPE_CACHE_TTL_MINUTES")
        env_file = tmp_path / "test.env"
        env_file.write_text("CODESCOPE_CACHE_TTL_MINUTES=5\n")
        config = resolve_config(use_env_file=env_file)
        assert config.cache_ttl_minutes == 5
        assert config.origin["cache_ttl_minutes"] == "env"

    def test_env_file_does_not_override_process_env(
        self, isolated_project, tmp_path, monkeypatch
    ):
        monkeypatch.setenv("CODESCOPE_CACHE_TTL_MINUTES", "8")
        env_file = tmp_path / "test.env"
        env_file.write_text("CODESCOPE_CACHE_TTL_MINUTES=5\n")
        assert resolve_config(use_env_file=env_file).cache_ttl_minutes == 8

    def test_missing_env_file(self, isolated_project, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_config(use_env_file=tmp_path / "absent.env")


class TestFrozenConfig:
    def test_frozen_config_is_immutable(self, isolated_project):
        frozen = resolve_config().to_frozen()
        with pytest.raises(AttributeError):
            frozen.max_retries = 9  # type: ignore[misc]
        with pytest.raises(TypeError):
            frozen.rate_limits["explain"] = RateLimitRule(1, 1)  # type: ignore[index]

    def test_derived_values(self):
        frozen = FrozenConfig(cache_ttl_minutes=2, request_deadline_ms=1500)
        assert frozen.cache_ttl_seconds == 120.0
        assert frozen.request_deadline_seconds == 1.5

    def test_feature_toggles(self):
        frozen = FrozenConfig(enable_diagram=False, enable_performance=True)
        enabled = frozen.enabled_capabilities()
        assert Capability.EXPLAIN in enabled
        assert Capability.DIAGRAM not in enabled
        assert Capability.PERFORMANCE in enabled
        assert Capability.REFACTORING not in enabled

    def test_explain_cannot_be_disabled(self):
        assert FrozenConfig().is_enabled(Capability.EXPLAIN)

    def test_with_overrides(self, isolated_project):
        config = resolve_config().with_overrides(max_retries=1, bogus=2)
        assert config.max_retries == 1
        assert config.origin["max_retries"] == "programmatic"
        assert "bogus" not in config.values
