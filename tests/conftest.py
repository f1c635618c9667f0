import pytest

from tests.stubs import RecordingBackend


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def request_args():
    return ("inv1", "banner", 0.5, "CA", "US", "SF", "android", "10", "14")
