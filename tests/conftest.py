import pytest

from builders import RecordingListener


@pytest.fixture
def listener():
    return RecordingListener()
