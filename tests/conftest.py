import pytest

from watton_engine.engine import calculate_simulation

from generators import make_invoice


@pytest.fixture
def invoice():
    return make_invoice()


@pytest.fixture
def simulation(invoice):
    return calculate_simulation(invoice)
