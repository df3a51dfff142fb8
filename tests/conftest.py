import pytest

from domain.sampling import IntervalSampler
from tests.helpers.stub_chain import StubChain


@pytest.fixture(scope="function")
def chain() -> StubChain:
    return StubChain()


@pytest.fixture(scope="function")
def sampler(chain: StubChain) -> IntervalSampler:
    return IntervalSampler(chain, chain, chain)
