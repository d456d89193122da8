"""Pytest configuration and fixtures for EchoSense tests."""

import pytest

from echosense.config import Config
from echosense.settings import CalibrationParams


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def calibration():
    return CalibrationParams()
