from mgsim.actions import cover_negative_cash, execute_action
from mgsim.schema import (
    Action,
    ACTION_BORROW_LONG_TERM,
    ACTION_BUY_ATTACHMENT,
    ACTION_BUY_CHIP,
    ACTION_BUY_MATERIALS,
    ACTION_HIRE,
    ACTION_PRODUCE,
    ACTION_REASSIGN,
    ACTION_SELL,
    ACTION_SELL_MACHINE,
    REASSIGN_TO_SALESMEN,
    REASSIGN_TO_WORKERS,
)
from mgsim.state import LOG_DECISION, LOG_REJECTION, Machine, PHASE_PERIOD_START


def test_action_from_dict_tolerates_garbage():
    assert Action.from_dict(None) is None
    assert Action.from_dict("SELL") is None
    assert Action.from_dict({"params": {}}) is None
    assert Action.from_dict({"action_type": "sell", "params": None}) == Action("SELL", {})
    assert Action.from_dict({"type": "HIRE", "params": {"workers": 1}}).params == {"workers": 1}


def test_none_action_is_do_nothing(state):
    outcome = execute_action(None, 0, state)
    assert outcome.accepted
    assert state.companies[0].log[-1].category == LOG_DECISION


def test_buy_materials_mutates_and_logs(state):
    company = state.companies[0]
    outcome = execute_action(Action(ACTION_BUY_MATERIALS, {"market": "Osaka", "quantity": 3}), 0, state)
    assert outcome.accepted
    assert company.materials == 4
    assert company.cash == 112 - 42
    assert company.period_material_cost == 42
    entry = company.log[-1]
    assert entry.action == ACTION_BUY_MATERIALS
    assert entry.snapshot["materials"] == 4


def test_rejection_mutates_nothing_but_log(state):
    company = state.companies[0]
    before = company.to_dict()
    outcome = execute_action(Action(ACTION_PRODUCE, {"material_to_wip": 1, "wip_to_product": 1}), 0, state)
    assert not outcome.accepted
    assert company.log[-1].category == LOG_REJECTION
    assert company.to_dict() == before


def test_produce_moves_stock(state):
    company = state.companies[0]
    execute_action(Action(ACTION_PRODUCE, {"material_to_wip": 1, "wip_to_product": 2}), 0, state)
    assert (company.materials, company.wip, company.products) == (0, 1, 3)
    assert company.cash == 109
    assert company.period_processing_cost == 3


def test_sell_at_open_market_executes(state):
    company = state.companies[0]
    company.products = 3
    outcome = execute_action(Action(ACTION_SELL, {"market": "Tokyo", "price": 20, "quantity": 2}), 0, state)
    assert outcome.accepted and not outcome.queued
    assert company.products == 1
    assert company.cash == 152
    assert state.market("Tokyo").current_stock == 2
    assert company.period_sales == 40


def test_sell_at_bidding_market_is_queued(state):
    company = state.companies[0]
    company.products = 3
    outcome = execute_action(Action(ACTION_SELL, {"market": "Sendai", "price": 38, "quantity": 2}), 0, state)
    assert outcome.accepted and outcome.queued
    assert company.products == 3
    assert state.market("Sendai").current_stock == 0


def test_hire_tracks_peak_personnel(state):
    company = state.companies[0]
    execute_action(Action(ACTION_HIRE, {"workers": 1, "salesmen": 1}), 0, state)
    assert company.personnel() == 4
    assert company.peak_personnel == 4
    assert company.period_extra_fixed == 10
    assert company.hires_this_row == 2


def test_chip_purchase_timing(state, state_p3):
    company = state.companies[0]
    execute_action(Action(ACTION_BUY_CHIP, {"chip": "research"}), 0, state)
    assert company.chips["research"] == 1
    assert company.chip_purchases["normal"]["research"] == 1

    company = state_p3.companies[0]
    execute_action(Action(ACTION_BUY_CHIP, {"chip": "research"}), 0, state_p3)
    assert company.chips["research"] == 0
    assert company.next_chips["research"] == 1
    company.row += 1
    execute_action(Action(ACTION_BUY_CHIP, {"chip": "advertising", "expedited": True}), 0, state_p3)
    assert company.chips["advertising"] == 1
    assert company.cash == 112 - 20 - 40


def test_string_expedited_flag_is_rejected(state_p3):
    company = state_p3.companies[0]
    outcome = execute_action(Action(ACTION_BUY_CHIP, {"chip": "research", "expedited": "false"}), 0, state_p3)
    assert not outcome.accepted
    assert company.cash == 112
    assert company.chips["research"] == 0
    assert company.next_chips["research"] == 0
    assert company.log[-1].category == LOG_REJECTION


def test_reassign_moves_staff_and_charges_fixed_cost(state):
    company = state.companies[0]
    company.workers = 3
    peak = company.peak_personnel
    outcome = execute_action(Action(ACTION_REASSIGN, {"direction": REASSIGN_TO_SALESMEN, "count": 2}), 0, state)
    assert outcome.accepted
    assert (company.workers, company.salesmen) == (1, 3)
    assert company.cash == 112 - 10
    assert company.period_extra_fixed == 10
    assert company.peak_personnel == max(peak, 4)
    assert company.log[-1].action == ACTION_REASSIGN

    company.row += 1
    execute_action(Action(ACTION_REASSIGN, {"direction": REASSIGN_TO_WORKERS, "count": 1}), 0, state)
    assert (company.workers, company.salesmen) == (2, 2)
    assert company.period_extra_fixed == 15


def test_machine_sale_books_special_loss(state):
    company = state.companies[0]
    company.machines.append(Machine("small", 0, 90))
    execute_action(Action(ACTION_SELL_MACHINE, {"machine_index": 1}), 0, state)
    assert len(company.machines) == 1
    assert company.cash == 112 + 63
    assert company.period_special_loss == 27


def test_attachment_adds_capacity_and_value(state):
    company = state.companies[0]
    execute_action(Action(ACTION_BUY_ATTACHMENT, {"machine_index": 0}), 0, state)
    assert company.machines[0].attachments == 1
    assert company.machines[0].book_value == 120
    assert company.cash == 82


def test_long_term_loan_interest_up_front(state_p3):
    state_p3.phase = PHASE_PERIOD_START
    company = state_p3.companies[0]
    outcome = execute_action(Action(ACTION_BORROW_LONG_TERM, {"amount": 100}), 0, state_p3)
    assert outcome.accepted
    assert company.long_term_loan == 100
    assert company.cash == 112 + 90
    assert company.period_interest == 10
    assert company.start_actions == 1


def test_cover_negative_cash_rounds_to_fifty(state):
    company = state.companies[0]
    company.cash = -14
    assert cover_negative_cash(company, state) == 50
    assert company.cash == 36
    assert company.short_term_loan == 50

    company.cash = -50
    assert cover_negative_cash(company, state) == 50
    company.cash = -51
    assert cover_negative_cash(company, state) == 100
    assert company.short_term_loan == 200
