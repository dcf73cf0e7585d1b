import pytest

from mgsim.mechanics import DiceRoller
from mgsim.rules import default_rules
from mgsim.state import PHASE_MID_PERIOD, new_game


def make_state(period: int = 2, seed: int = 7, phase: str = PHASE_MID_PERIOD, first_round: bool = False):
    """Fresh game positioned inside a period with the given phase."""
    rules = default_rules()
    state = new_game(rules=rules, roller=DiceRoller(seed))
    state.period = period
    state.row_budget = rules.rows_for(period)
    state.phase = phase
    state.first_round = first_round
    return state


@pytest.fixture
def rules():
    return default_rules()


@pytest.fixture
def state():
    return make_state()


@pytest.fixture
def state_p3():
    return make_state(period=3)
