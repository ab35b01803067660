"""Unit tests for config audit output, environment checks and the CLI."""

import json

import pytest

from codescope.config import (
    SourceTracker,
    check_environment,
    generate_redacted_audit,
    generate_telemetry_summary,
    resolve_config,
)
from codescope.config.api import main
from codescope.config.schema import RateLimitSetting

pytestmark = pytest.mark.unit


class TestSourceTracker:
    def test_records_and_overwrites_origins(self):
        tracker = SourceTracker()
        tracker.set_multiple({"a": 1, "b": 2}, "default")
        tracker.set_origin("a", "env")
        assert tracker.get_source_map() == {"a": "env", "b": "default"}

    def test_source_map_is_a_copy(self):
        tracker = SourceTracker()
        tracker.set_origin("a", "file")
        snapshot = tracker.get_source_map()
        tracker.set_origin("a", "programmatic")
        assert snapshot["a"] == "file"

    def test_telemetry_summary_counts_origins(self):
        summary = generate_telemetry_summary(
            {"a": "env", "b": "default", "c": "default"}
        )
        assert summary == {"env": 1, "default": 2}


class TestRedactedAudit:
    def test_lines_name_origin_and_env_variable(self):
        text = generate_redacted_audit(
            {"max_retries": 4, "cache_max_size": 50},
            {"max_retries": "env", "cache_max_size": "default"},
        )
        assert text.splitlines() == [
            "max_retries: env:CODESCOPE_MAX_RETRIES=4",
            "cache_max_size: default:50",
        ]

    def test_userinfo_is_redacted_from_urls(self):
        text = generate_redacted_audit(
            {"auxiliary_base_url": "https://user:pw@services.internal:8443/api"},
            {"auxiliary_base_url": "file"},
        )
        assert "pw" not in text
        assert text == "auxiliary_base_url: file:https://<redacted>@services.internal:8443/api"

    def test_plain_urls_are_unchanged(self):
        text = generate_redacted_audit(
            {"chat_completions_base_url": "https://api.example.com/v1"}, {}
        )
        assert text == "chat_completions_base_url: default:https://api.example.com/v1"

    def test_rate_limits_are_compact(self):
        text = generate_redacted_audit(
            {
                "rate_limits": {
                    "explain": RateLimitSetting(limit=10, window_seconds=60),
                    "security-scan": RateLimitSetting(limit=2, window_seconds=3600),
                }
            },
            {"rate_limits": "default"},
        )
        assert text == "rate_limits: default:{explain=10/60s, security-scan=2/3600s}"

    def test_resolved_config_audit_covers_every_field(self, isolated_project):
        config = resolve_config({"max_retries": 1})
        lines = config.audit().splitlines()
        assert len(lines) == len(config.values)
        assert "max_retries: programmatic:1" in lines


class TestCheckEnvironment:
    def test_api_keys_are_redacted(self, monkeypatch):
        monkeypatch.setenv("CODESCOPE_CHAT_COMPLETIONS_API_KEY", "sk-secret")
        monkeypatch.setenv("CODESCOPE_MAX_RETRIES", "2")
        summary = check_environment()
        assert summary["CODESCOPE_CHAT_COMPLETIONS_API_KEY"] == "<redacted>"
        assert summary["CODESCOPE_MAX_RETRIES"] == "2"
        assert "sk-secret" not in json.dumps(summary)


class TestCli:
    def test_check_succeeds_for_valid_config(self, isolated_project):
        assert main(["--check"]) == 0

    def test_check_fails_for_invalid_config(self, isolated_project, monkeypatch, capsys):
        monkeypatch.setenv("CODESCOPE_CACHE_MAX_SIZE", "-3")
        assert main(["--check"]) == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_json_output(self, isolated_project, monkeypatch, capsys):
        monkeypatch.setenv("CODESCOPE_MAX_RETRIES", "2")
        assert main(["--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["values"]["max_retries"] == 2
        assert payload["origin"]["max_retries"] == "env"
        assert payload["values"]["rate_limits"]["explain"] == {
            "limit": 10,
            "window_seconds": 60,
        }
        assert payload["origin_counts"]["env"] == 1

    def test_text_output(self, isolated_project, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert out.startswith("=== Effective Configuration ===")
        assert "default_provider: default:chat-completions" in out

    def test_profile_argument(self, isolated_project, capsys):
        (isolated_project / "pyproject.toml").write_text(
            "[tool.codescope.profiles.ci]\nmax_retries = 0\n"
        )
        assert main(["--profile", "ci", "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["profile"] == "ci"
        assert payload["values"]["max_retries"] == 0
