"""Shared fixtures: a fake Polarion server and a controllable clock."""

import pytest

from polarion_resolver.settings import Settings
from fakes import BASE_URL, FakeClock, FakePolarion


@pytest.fixture
def server() -> FakePolarion:
    return FakePolarion()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(url=BASE_URL, token="secret-token", refresh_minutes=5, exception_restart=2)
