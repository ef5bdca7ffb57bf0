from __future__ import annotations

import pytest

from requests_mock import Mocker


@pytest.fixture
def requests_mock():
    with Mocker() as mock:
        yield mock


class TimeController:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def controller() -> TimeController:
    return TimeController()
