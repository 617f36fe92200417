"""
Test fixtures for envcache unit tests.
Provides fake backend clients, a controllable clock, and sample values.
"""

from .fake_clients import FakeRedis, FakeMemcacheClient
from .fake_clock import FakeClock
from .sample_values import SAMPLE_VALUES, large_value

__all__ = [
    "FakeRedis",
    "FakeMemcacheClient",
    "FakeClock",
    "SAMPLE_VALUES",
    "large_value",
]
