import typing as t

import pytest

from multisink.config import TargetDefaultsSettings

# 2023-11-14T22:13:20.123Z
FIXED_MS = 1_700_000_000_123


class Collector:
    """FUNCTION target that records every payload it receives."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def __call__(self, payload: str) -> None:
        self.lines.append(payload)


class FailingTarget:
    """FUNCTION target that always raises, counting its attempts."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self.error = error or RuntimeError("sink down")

    def __call__(self, payload: str) -> None:
        self.calls += 1
        raise self.error


@pytest.fixture
def clock() -> t.Callable[[], int]:
    return lambda: FIXED_MS


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture
def failing() -> FailingTarget:
    return FailingTarget()


@pytest.fixture
def defaults(monkeypatch) -> TargetDefaultsSettings:
    """Target defaults isolated from the developer's environment."""
    for name in (
        "LOG_LEVEL",
        "STYLE",
        "ERROR_POLICY",
        "COLOR",
        "UNIFORM_LENGTH",
        "FULL_TIMESTAMPS",
        "HTTPS",
        "HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(f"MULTISINK_TARGET_{name}", raising=False)
    return TargetDefaultsSettings(_env_file=None)


@pytest.fixture
def make_collector() -> t.Type[Collector]:
    return Collector


@pytest.fixture
def make_failing() -> t.Type[FailingTarget]:
    return FailingTarget
