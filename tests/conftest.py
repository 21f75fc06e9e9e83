"""
Shared fixtures for the face authentication tests.
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from faceauth.clients.memory_store import create_memory_database
from faceauth.config import Settings
from faceauth.services import build_services


class FakeClock:
    """Controllable time source for session expiry tests."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def test_settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        descriptor_dimension=128,
        match_threshold=0.6,
        normalize_descriptors=False,
        enrollment_steps=5,
        otel_console_export=False,
        otlp_endpoint=None,
    )


@pytest.fixture
def db():
    return create_memory_database()


@pytest.fixture
def services(test_settings, db, clock):
    return build_services(test_settings, db, clock=clock)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def base_descriptor(rng):
    """A face-api style 128-d descriptor."""
    return rng.normal(0.0, 0.1, 128)


def jitter(descriptor: np.ndarray, rng, scale: float = 0.005) -> list:
    """A nearby capture of the same face, as the JSON list a client would send."""
    return (descriptor + rng.normal(0.0, scale, descriptor.shape)).tolist()
