"""
Global test configuration with support for different test types.
"""

import os

import pytest

from codescope.config import FrozenConfig
from codescope.core.types import Capability
from codescope.providers import EchoProvider, ProviderRegistry
from codescope.telemetry import InMemoryReporter, TelemetryContext

# --- Environment Isolation (Autouse) ---


@pytest.fixture(autouse=True)
def isolate_codescope_env(request, monkeypatch):
    """Ensure a clean CODESCOPE_* environment for each test.

    Escape hatch: mark a test with @pytest.mark.allow_env_pollution to keep
    the current environment unchanged.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("CODESCOPE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def neutral_home_config(request, monkeypatch, tmp_path, isolate_codescope_env):  # noqa: ARG001
    """Point the home config path at an isolated temp file.

    Prevents reading a developer's real ~/.config/codescope.toml during tests.
    """
    if request.node.get_closest_marker("allow_real_home_config"):
        return
    fake_home_dir = tmp_path / "home_config_isolated"
    fake_home_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("CODESCOPE_CONFIG_HOME", str(fake_home_dir / "codescope.toml"))


@pytest.fixture
def isolated_project(tmp_path, monkeypatch):
    """Empty project directory as cwd so no real pyproject.toml is picked up."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "pyproject.toml").write_text("[project]\nname = 'x'\n")
    monkeypatch.chdir(project)
    return project


def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with offline providers",
        "allow_env_pollution: Keep CODESCOPE_* variables from the real environment",
        "allow_real_home_config: Read the real home configuration file",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def reporter():
    return InMemoryReporter()


@pytest.fixture
def telemetry(reporter):
    return TelemetryContext(reporter)


@pytest.fixture
def frozen_config():
    return FrozenConfig()


@pytest.fixture
def echo_registry():
    """Registry mirroring the offline providers built for the default config."""
    registry = ProviderRegistry()
    registry.register(
        EchoProvider(
            "chat-completions",
            capabilities=(
                Capability.EXPLAIN,
                Capability.DIAGRAM,
                Capability.SECURITY_SCAN,
                Capability.DOCUMENTATION,
                Capability.TESTS,
            ),
        )
    )
    registry.register(
        EchoProvider(
            "analysis-services",
            capabilities=(Capability.PERFORMANCE, Capability.REFACTORING),
        ),
        auxiliary=True,
    )
    return registry
