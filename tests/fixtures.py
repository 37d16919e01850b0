# type: ignore
import pytest

import zrho.machine.profile as mp


@pytest.fixture
def with_standard():
    yield mp.builtin_profile('standard')


@pytest.fixture
def with_basic():
    yield mp.builtin_profile('basic')
