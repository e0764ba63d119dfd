import pytest

from tests.factories import COMPANY_CONFIG, FakeStore


@pytest.fixture
def company_config():
    return dict(COMPANY_CONFIG)


@pytest.fixture
def store():
    return FakeStore()
