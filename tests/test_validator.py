import pytest

from mgsim.mechanics import DiceRoller
from mgsim.schema import (
    ACTION_BORROW_LONG_TERM,
    ACTION_BUY_ATTACHMENT,
    ACTION_BUY_CHIP,
    ACTION_BUY_COMPUTER,
    ACTION_BUY_INSURANCE,
    ACTION_BUY_MACHINE,
    ACTION_BUY_MATERIALS,
    ACTION_BUY_WAREHOUSE,
    ACTION_DO_NOTHING,
    ACTION_HIRE,
    ACTION_PRODUCE,
    ACTION_REASSIGN,
    ACTION_SELL,
    ACTION_SELL_MACHINE,
    REASSIGN_TO_SALESMEN,
    REASSIGN_TO_WORKERS,
)
from mgsim.state import Machine, PHASE_PERIOD_START
from mgsim.validator import can_execute

from conftest import make_state


# =============================================================================
# COMMON
# =============================================================================

def test_unknown_action_rejected(state):
    result = can_execute("TELEPORT", {}, 0, state)
    assert not result.valid
    assert "unknown action" in result.reason


def test_no_rows_left(state):
    state.companies[0].row = state.row_budget
    assert not can_execute(ACTION_DO_NOTHING, {}, 0, state).valid


def test_do_nothing_valid_while_rows_remain(state):
    state.companies[0].row = state.row_budget - 1
    assert can_execute(ACTION_DO_NOTHING, {}, 0, state).valid


def test_period_start_actions_need_period_start_phase(state_p3):
    assert not can_execute(ACTION_BUY_COMPUTER, {}, 0, state_p3).valid
    state_p3.phase = PHASE_PERIOD_START
    state_p3.companies[0].chips["computer"] = 0
    assert can_execute(ACTION_BUY_COMPUTER, {}, 0, state_p3).valid
    assert not can_execute(ACTION_BUY_MATERIALS, {"market": "Tokyo", "quantity": 1}, 0, state_p3).valid


def test_blocked_action_rejected_on_blocked_row(state):
    company = state.companies[0]
    company.blocked = {ACTION_PRODUCE}
    company.blocked_row = company.row
    result = can_execute(ACTION_PRODUCE, {"material_to_wip": 1, "wip_to_product": 0}, 0, state)
    assert not result.valid
    company.row += 1
    assert can_execute(ACTION_PRODUCE, {"material_to_wip": 1, "wip_to_product": 0}, 0, state).valid


# =============================================================================
# CHIPS
# =============================================================================

def test_expedited_chip_forbidden_in_first_period(state):
    assert not can_execute(ACTION_BUY_CHIP, {"chip": "research", "expedited": True}, 0, state).valid
    assert can_execute(ACTION_BUY_CHIP, {"chip": "research", "expedited": False}, 0, state).valid


def test_chip_purchase_forbidden_at_period_start(state_p3):
    state_p3.phase = PHASE_PERIOD_START
    result = can_execute(ACTION_BUY_CHIP, {"chip": "research"}, 0, state_p3)
    assert not result.valid
    assert "period start" in result.reason


def test_one_chip_purchase_per_row(state):
    company = state.companies[0]
    company.last_chip_row = company.row
    assert not can_execute(ACTION_BUY_CHIP, {"chip": "research"}, 0, state).valid


def test_chip_holding_limits(state, state_p3):
    company = state.companies[0]
    company.chips["education"] = 2
    assert not can_execute(ACTION_BUY_CHIP, {"chip": "education"}, 0, state).valid

    company = state_p3.companies[0]
    company.chips["research"] = 5
    assert not can_execute(ACTION_BUY_CHIP, {"chip": "research", "expedited": True}, 0, state_p3).valid
    # normal purchase goes to next period holdings
    assert can_execute(ACTION_BUY_CHIP, {"chip": "research"}, 0, state_p3).valid


def test_chip_cash_requirement(state_p3):
    company = state_p3.companies[0]
    company.cash = 30
    assert can_execute(ACTION_BUY_CHIP, {"chip": "advertising"}, 0, state_p3).valid
    assert not can_execute(ACTION_BUY_CHIP, {"chip": "advertising", "expedited": True}, 0, state_p3).valid


def test_unknown_chip(state):
    assert not can_execute(ACTION_BUY_CHIP, {"chip": "computer"}, 0, state).valid


# =============================================================================
# SELL
# =============================================================================

def test_sell_valid(state):
    state.companies[0].products = 2
    assert can_execute(ACTION_SELL, {"market": "Tokyo", "price": 20, "quantity": 2}, 0, state).valid


@pytest.mark.parametrize("params,products,reason", [
    ({"market": "Tokyo", "price": 20, "quantity": 1}, 5, "minimum sale"),
    ({"market": "Tokyo", "price": 21, "quantity": 2}, 5, "price"),
    ({"market": "Tokyo", "price": 0, "quantity": 2}, 5, "price"),
    ({"market": "Tokyo", "price": 20, "quantity": 3}, 2, "not enough products"),
    ({"market": "Tokyo", "price": 20, "quantity": 3}, 5, "sales capacity"),
    ({"market": "Mars", "price": 20, "quantity": 2}, 5, "unknown market"),
])
def test_sell_rejections(state, params, products, reason):
    state.companies[0].products = products
    result = can_execute(ACTION_SELL, params, 0, state)
    assert not result.valid
    assert reason in result.reason


def test_sell_needs_salesman(state):
    company = state.companies[0]
    company.products = 3
    company.salesmen = 0
    assert not can_execute(ACTION_SELL, {"market": "Tokyo", "price": 20, "quantity": 2}, 0, state).valid


def test_sell_closed_market(state_p3):
    state_p3.market("Sendai").closed = True
    state_p3.companies[0].products = 3
    result = can_execute(ACTION_SELL, {"market": "Sendai", "price": 40, "quantity": 2}, 0, state_p3)
    assert not result.valid
    assert "closed" in result.reason


def test_sell_market_capacity(state):
    state.companies[0].products = 3
    market = state.market("Sendai")
    market.current_stock = 2
    assert not can_execute(ACTION_SELL, {"market": "Sendai", "price": 40, "quantity": 2}, 0, state).valid


def test_final_period_inventory_reserve():
    state = make_state(period=5)
    company = state.companies[0]
    company.materials, company.wip, company.products = 4, 4, 3
    assert not can_execute(ACTION_SELL, {"market": "Tokyo", "price": 20, "quantity": 2}, 0, state).valid
    company.products = 6
    assert can_execute(ACTION_SELL, {"market": "Tokyo", "price": 20, "quantity": 2}, 0, state).valid


# =============================================================================
# MATERIALS
# =============================================================================

def test_first_round_material_cap():
    state = make_state(period=2, first_round=True)
    assert can_execute(ACTION_BUY_MATERIALS, {"market": "Osaka", "quantity": 3}, 0, state).valid
    assert not can_execute(ACTION_BUY_MATERIALS, {"market": "Osaka", "quantity": 4}, 0, state).valid
    state.first_round = False
    assert can_execute(ACTION_BUY_MATERIALS, {"market": "Osaka", "quantity": 4}, 0, state).valid


def test_later_periods_cap_materials_at_capacity(state_p3):
    # one small machine plus computer chip
    assert can_execute(ACTION_BUY_MATERIALS, {"market": "Osaka", "quantity": 2}, 0, state_p3).valid
    assert not can_execute(ACTION_BUY_MATERIALS, {"market": "Osaka", "quantity": 3}, 0, state_p3).valid


def test_materials_storage_and_cash(state):
    company = state.companies[0]
    company.materials, company.products = 10, 9
    assert not can_execute(ACTION_BUY_MATERIALS, {"market": "Tokyo", "quantity": 2}, 0, state).valid
    company.materials, company.products = 0, 0
    company.cash = 20
    assert not can_execute(ACTION_BUY_MATERIALS, {"market": "Tokyo", "quantity": 2}, 0, state).valid


def test_materials_market_max_stock(state):
    assert not can_execute(ACTION_BUY_MATERIALS, {"market": "Sendai", "quantity": 4}, 0, state).valid


# =============================================================================
# PRODUCE
# =============================================================================

def test_one_one_production_always_rejected():
    roller = DiceRoller(2024)
    for seed in range(50):
        state = make_state(seed=seed)
        company = state.companies[0]
        company.materials = roller.randint(1, 9)
        company.wip = roller.randint(1, 9)
        company.products = roller.randint(0, 9)
        company.cash = roller.randint(0, 500)
        company.workers = roller.randint(1, 3)
        result = can_execute(ACTION_PRODUCE, {"material_to_wip": 1, "wip_to_product": 1}, 0, state)
        assert not result.valid


def test_produce_rules(state):
    company = state.companies[0]
    assert can_execute(ACTION_PRODUCE, {"material_to_wip": 1, "wip_to_product": 2}, 0, state).valid
    assert not can_execute(ACTION_PRODUCE, {"material_to_wip": 0, "wip_to_product": 0}, 0, state).valid
    assert not can_execute(ACTION_PRODUCE, {"material_to_wip": 2, "wip_to_product": 0}, 0, state).valid
    assert not can_execute(ACTION_PRODUCE, {"material_to_wip": 0, "wip_to_product": 3}, 0, state).valid
    assert not can_execute(ACTION_PRODUCE, {"material_to_wip": -1, "wip_to_product": 2}, 0, state).valid

    company.wip = 9
    company.materials = 5
    assert not can_execute(ACTION_PRODUCE, {"material_to_wip": 2, "wip_to_product": 0}, 0, state).valid


def test_produce_capacity(state):
    company = state.companies[0]
    company.wip = 5
    assert can_execute(ACTION_PRODUCE, {"material_to_wip": 0, "wip_to_product": 2}, 0, state).valid
    result = can_execute(ACTION_PRODUCE, {"material_to_wip": 0, "wip_to_product": 3}, 0, state)
    assert not result.valid
    assert "capacity" in result.reason


# =============================================================================
# PEOPLE, MACHINES, WAREHOUSES
# =============================================================================

def test_hire_limits(state):
    company = state.companies[0]
    assert can_execute(ACTION_HIRE, {"workers": 2, "salesmen": 1}, 0, state).valid
    assert not can_execute(ACTION_HIRE, {"workers": 2, "salesmen": 2}, 0, state).valid
    assert not can_execute(ACTION_HIRE, {"workers": 0, "salesmen": 0}, 0, state).valid

    company.hire_row = company.row
    company.hires_this_row = 2
    assert can_execute(ACTION_HIRE, {"workers": 1}, 0, state).valid
    assert not can_execute(ACTION_HIRE, {"workers": 2}, 0, state).valid


def test_machine_actions(state):
    company = state.companies[0]
    assert can_execute(ACTION_BUY_MACHINE, {"machine_type": "small"}, 0, state).valid
    assert not can_execute(ACTION_BUY_MACHINE, {"machine_type": "large"}, 0, state).valid
    assert not can_execute(ACTION_BUY_MACHINE, {"machine_type": "robot"}, 0, state).valid

    assert not can_execute(ACTION_SELL_MACHINE, {"machine_index": 0}, 0, state).valid
    company.machines.append(Machine("large", 0, 200))
    assert can_execute(ACTION_SELL_MACHINE, {"machine_index": 1}, 0, state).valid
    assert not can_execute(ACTION_SELL_MACHINE, {"machine_index": 2}, 0, state).valid


def test_attachment_rules(state):
    company = state.companies[0]
    company.machines.append(Machine("large", 0, 200))
    assert can_execute(ACTION_BUY_ATTACHMENT, {"machine_index": 0}, 0, state).valid
    assert not can_execute(ACTION_BUY_ATTACHMENT, {"machine_index": 1}, 0, state).valid
    company.machines[0].attachments = 1
    assert not can_execute(ACTION_BUY_ATTACHMENT, {"machine_index": 0}, 0, state).valid


def test_warehouse_cash(state):
    company = state.companies[0]
    assert can_execute(ACTION_BUY_WAREHOUSE, {}, 0, state).valid
    company.cash = 19
    assert not can_execute(ACTION_BUY_WAREHOUSE, {}, 0, state).valid


# =============================================================================
# PERIOD START
# =============================================================================

def test_service_chips_not_rebought(state_p3):
    state_p3.phase = PHASE_PERIOD_START
    company = state_p3.companies[0]
    assert not can_execute(ACTION_BUY_INSURANCE, {}, 0, state_p3).valid
    company.chips["insurance"] = 0
    assert can_execute(ACTION_BUY_INSURANCE, {}, 0, state_p3).valid


def test_period_start_action_budget(state_p3):
    state_p3.phase = PHASE_PERIOD_START
    company = state_p3.companies[0]
    company.chips["computer"] = 0
    company.start_actions = 3
    assert not can_execute(ACTION_BUY_COMPUTER, {}, 0, state_p3).valid


def test_long_term_loan_rules(state, state_p3):
    state.phase = PHASE_PERIOD_START
    assert not can_execute(ACTION_BORROW_LONG_TERM, {"amount": 10}, 0, state).valid

    state_p3.phase = PHASE_PERIOD_START
    company = state_p3.companies[0]
    assert can_execute(ACTION_BORROW_LONG_TERM, {"amount": 141}, 0, state_p3).valid
    assert not can_execute(ACTION_BORROW_LONG_TERM, {"amount": 142}, 0, state_p3).valid
    assert not can_execute(ACTION_BORROW_LONG_TERM, {"amount": 0}, 0, state_p3).valid

    company.long_term_loan = 100
    assert can_execute(ACTION_BORROW_LONG_TERM, {"amount": 41}, 0, state_p3).valid
    assert not can_execute(ACTION_BORROW_LONG_TERM, {"amount": 42}, 0, state_p3).valid


def test_malformed_params_rejected(state):
    assert not can_execute(ACTION_SELL, {"market": "Tokyo", "quantity": "lots"}, 0, state).valid
    assert not can_execute(ACTION_HIRE, "workers", 0, state).valid


@pytest.mark.parametrize("action_type,params", [
    (ACTION_BUY_MACHINE, {"machine_type": ["large"]}),
    (ACTION_BUY_MACHINE, {"machine_type": None}),
    (ACTION_BUY_MACHINE, {}),
    (ACTION_BUY_CHIP, {"chip": ["research"]}),
    (ACTION_BUY_CHIP, {"chip": "research", "expedited": "false"}),
    (ACTION_BUY_CHIP, {"chip": "research", "expedited": 1}),
    (ACTION_BUY_MATERIALS, {"market": ["Tokyo"], "quantity": 1}),
    (ACTION_BUY_MATERIALS, {"market": "Tokyo", "quantity": float("inf")}),
    (ACTION_SELL, {"market": {"name": "Tokyo"}, "quantity": 2}),
    (ACTION_REASSIGN, {"direction": ["to_salesmen"], "count": 1}),
])
def test_wrongly_typed_params_rejected(state_p3, action_type, params):
    company = state_p3.companies[0]
    before = company.to_dict()
    assert not can_execute(action_type, params, 0, state_p3).valid
    assert company.to_dict() == before


def test_expedited_flag_must_be_bool(state_p3):
    assert can_execute(ACTION_BUY_CHIP, {"chip": "research", "expedited": False}, 0, state_p3).valid
    assert can_execute(ACTION_BUY_CHIP, {"chip": "research", "expedited": True}, 0, state_p3).valid
    result = can_execute(ACTION_BUY_CHIP, {"chip": "research", "expedited": "false"}, 0, state_p3)
    assert "true or false" in result.reason


# =============================================================================
# REASSIGN
# =============================================================================

def test_reassign_valid(state):
    assert can_execute(ACTION_REASSIGN, {"direction": REASSIGN_TO_SALESMEN, "count": 1}, 0, state).valid
    # count defaults to one
    assert can_execute(ACTION_REASSIGN, {"direction": REASSIGN_TO_WORKERS}, 0, state).valid


@pytest.mark.parametrize("params,reason", [
    ({"direction": "sideways", "count": 1}, "direction"),
    ({"direction": REASSIGN_TO_SALESMEN, "count": 0}, "at least 1"),
    ({"direction": REASSIGN_TO_SALESMEN, "count": 2}, "not enough staff"),
    ({"direction": REASSIGN_TO_WORKERS, "count": 2}, "not enough staff"),
    ({"direction": REASSIGN_TO_SALESMEN, "count": 6}, "at most 5"),
])
def test_reassign_rejections(state, params, reason):
    result = can_execute(ACTION_REASSIGN, params, 0, state)
    assert not result.valid
    assert reason in result.reason


def test_reassign_cash(state):
    company = state.companies[0]
    company.workers = 3
    company.cash = 14
    assert can_execute(ACTION_REASSIGN, {"direction": REASSIGN_TO_SALESMEN, "count": 2}, 0, state).valid
    assert not can_execute(ACTION_REASSIGN, {"direction": REASSIGN_TO_SALESMEN, "count": 3}, 0, state).valid


def test_reassign_not_at_period_start(state_p3):
    state_p3.phase = PHASE_PERIOD_START
    assert not can_execute(ACTION_REASSIGN, {"direction": REASSIGN_TO_SALESMEN}, 0, state_p3).valid
