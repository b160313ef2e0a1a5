"""
Global test configuration with support for different test types.
"""

import asyncio
from collections.abc import Callable
import logging
import os
from typing import Any

import pytest

from studygen.config import FrozenConfig
from studygen.core.types import Document, GenerationResult
from studygen.orchestrator import Orchestrator


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_studygen_env(request, monkeypatch):
    """Ensure a clean STUDYGEN_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ):
        if key.startswith("STUDYGEN_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def neutral_home_config(request, monkeypatch, tmp_path):
    """Point the home config path at an isolated temp file.

    Prevents reading a developer's real ~/.config/studygen.toml during tests.
    """
    if request.node.get_closest_marker("allow_real_home_config"):
        return
    fake_home_dir = tmp_path / "home_config_isolated"
    fake_home_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("STUDYGEN_CONFIG_HOME", str(fake_home_dir / "studygen.toml"))


@pytest.fixture(autouse=True)
def isolated_cwd(request, monkeypatch, tmp_path):
    """Run from an empty directory so no real pyproject.toml is picked up."""
    if request.node.get_closest_marker("allow_real_project_config"):
        return
    workdir = tmp_path / "cwd"
    workdir.mkdir(exist_ok=True)
    monkeypatch.chdir(workdir)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Behavioral contracts of public components",
        "integration: End-to-end pipeline tests with scripted adapters",
        "allow_env_pollution: Keep STUDYGEN_* environment variables",
        "allow_real_home_config: Read the real home configuration file",
        "allow_real_project_config: Keep the real working directory",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Scripted Generation ---

type Script = Callable[[str, str], str]


class ScriptedAdapter:
    """Generation adapter driven by a ``(model_name, prompt) -> text`` script.

    The script may raise to simulate a provider failure. Every call is
    recorded, and the peak number of concurrent calls is tracked.
    """

    def __init__(self, script: Script, *, tokens_per_call: int = 100) -> None:
        self.script = script
        self.tokens_per_call = tokens_per_call
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(self, *, model_name: str, prompt: str) -> GenerationResult:
        self.calls.append((model_name, prompt))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield so concurrent calls in a batch actually overlap
            await asyncio.sleep(0)
            text = self.script(model_name, prompt)
        finally:
            self.in_flight -= 1
        return GenerationResult(
            text=text, tokens_used=self.tokens_per_call, model_name=model_name
        )

    def prompts_containing(self, marker: str) -> list[str]:
        return [prompt for _, prompt in self.calls if marker in prompt]


@pytest.fixture
def scripted_adapter() -> Callable[..., ScriptedAdapter]:
    """Factory for `ScriptedAdapter` instances."""

    def _make(script: Script, **kwargs: Any) -> ScriptedAdapter:
        return ScriptedAdapter(script, **kwargs)

    return _make


@pytest.fixture
def make_orchestrator() -> Callable[..., Orchestrator]:
    """Factory for orchestrators with a default frozen config."""

    def _make(adapter: Any, **kwargs: Any) -> Orchestrator:
        config = kwargs.pop("config", FrozenConfig())
        return Orchestrator(config, adapter=adapter, **kwargs)

    return _make


def filler_text(length: int) -> str:
    """Text of exactly ``length`` chars with word breaks only.

    No paragraph breaks or sentence endings, so chunk boundaries are fully
    determined by document headers and word breaks.
    """
    return ("abcd " * (length // 5 + 1))[:length]


@pytest.fixture
def make_documents() -> Callable[[int, int], tuple[Document, ...]]:
    """Factory for ``count`` filler documents of ``length`` chars each."""

    def _make(count: int, length: int) -> tuple[Document, ...]:
        return tuple(
            Document(id=f"d{i}", name=f"Doc {i}", text=filler_text(length))
            for i in range(1, count + 1)
        )

    return _make
