"""
Global test configuration and fixtures for the sharedbox test suite.
"""
import uuid

import numpy as np
import pytest

from sharedbox import SharedDict
from sharedbox.engine import InProcessEngine


@pytest.fixture
def segment_name():
    """Unique segment name per test"""
    return f"test_{uuid.uuid4().hex[:12]}"


@pytest.fixture
def engine(segment_name):
    """Fixture providing a fresh in-process engine"""
    engine = InProcessEngine(segment_name, size=1024 * 1024, create=True, max_keys=64)
    yield engine
    engine.close()
    engine.unlink()


@pytest.fixture
def shared_dict(segment_name):
    """Fixture providing an open SharedDict on a fresh segment"""
    d = SharedDict(segment_name, size=1024 * 1024, max_keys=256)
    yield d
    d.close()
    d.unlink()


@pytest.fixture
def float_matrix():
    """2x3 float32 tensor [[1, 2, 3], [4, 5, 6]]"""
    return np.array([[1, 2, 3], [4, 5, 6]], dtype=np.float32)
