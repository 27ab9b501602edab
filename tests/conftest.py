"""Shared fixtures for the true-wage test suite."""
import pytest

from jurisdictions import load_jurisdiction


@pytest.fixture
def england():
    return load_jurisdiction("england", 2025)


@pytest.fixture
def scotland():
    return load_jurisdiction("scotland", 2025)
