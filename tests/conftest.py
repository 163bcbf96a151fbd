import pytest

from dataset import generate_dataset


@pytest.fixture(scope="session")
def dataset():
    return generate_dataset()
