"""
Action Execution.

Execution routines for every action type. Each routine re-validates through
can_execute, mutates the acting company, logs the result, and runs the
invariant check. Sales at bidding markets are queued for the auction
instead of being executed here.
"""

from typing import Callable, Dict, Optional

from mgsim.invariants import check_company, check_markets
from mgsim.mechanics import ceil_int, floor_int
from mgsim.schema import (
    Action,
    ActionOutcome,
    ACTION_SELL,
    ACTION_BUY_MATERIALS,
    ACTION_PRODUCE,
    ACTION_HIRE,
    ACTION_REASSIGN,
    ACTION_BUY_CHIP,
    ACTION_BUY_MACHINE,
    ACTION_SELL_MACHINE,
    ACTION_BUY_ATTACHMENT,
    ACTION_BUY_WAREHOUSE,
    ACTION_BUY_COMPUTER,
    ACTION_BUY_INSURANCE,
    ACTION_BORROW_LONG_TERM,
    ACTION_DO_NOTHING,
    PERIOD_START_ACTIONS,
    REASSIGN_TO_SALESMEN,
)
from mgsim.state import Company, GameState, Machine, Market, LOG_DECISION, LOG_REJECTION
from mgsim.validator import can_execute, chip_price


# =============================================================================
# SHARED HELPERS
# =============================================================================

def consume_row(company: Company):
    """Advance the company's row counter by one."""
    company.row += 1


def cover_negative_cash(company: Company, state: GameState) -> int:
    """
    Cover negative cash with an automatic short-term loan.

    The draw is rounded up to the rule's draw unit. Returns the amount drawn.
    """
    if company.cash >= 0:
        return 0
    unit = state.rules.short_term_draw_unit
    deficit = -company.cash
    draw = ((deficit + unit - 1) // unit) * unit
    company.short_term_loan += draw
    company.cash += draw
    return draw


def complete_sale(company: Company, market: Market, price: int, quantity: int, state: GameState) -> int:
    """Credit a sale and fill the market. Returns revenue."""
    revenue = price * quantity
    company.cash += revenue
    company.products -= quantity
    market.current_stock += quantity
    company.period_sales += revenue
    company.period_quantity += quantity
    company.total_sales += revenue
    company.total_quantity += quantity
    return revenue


def record_opportunity_sale(company: Company, quantity: int, price: int) -> int:
    """Sale outside any market (risk-card opportunity)."""
    revenue = price * quantity
    company.cash += revenue
    company.products -= quantity
    company.period_sales += revenue
    company.period_quantity += quantity
    company.total_sales += revenue
    company.total_quantity += quantity
    return revenue


# =============================================================================
# EXECUTION ROUTINES
# =============================================================================

def _sell(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    market = state.market(params["market"])
    quantity = int(params["quantity"])
    price = int(params.get("price", market.sell_price))
    if market.needs_bid:
        return ActionOutcome(True, f"bid queued at {market.name}", 0, queued=True)
    revenue = complete_sale(company, market, price, quantity, state)
    return ActionOutcome(True, f"sold {quantity} at {market.name} for {price}", revenue)


def _buy_materials(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    market = state.market(params["market"])
    quantity = int(params["quantity"])
    cost = quantity * market.buy_price
    company.cash -= cost
    company.materials += quantity
    company.period_material_cost += cost
    return ActionOutcome(True, f"bought {quantity} materials at {market.name}", cost)


def _produce(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    to_wip = int(params.get("material_to_wip", 0))
    to_product = int(params.get("wip_to_product", 0))
    cost = (to_wip + to_product) * state.rules.processing_cost
    company.wip -= to_product
    company.products += to_product
    company.materials -= to_wip
    company.wip += to_wip
    company.cash -= cost
    company.period_processing_cost += cost
    return ActionOutcome(True, f"material->wip {to_wip}, wip->product {to_product}", cost)


def _hire(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    workers = int(params.get("workers", 0))
    salesmen = int(params.get("salesmen", 0))
    total = workers + salesmen
    cost = total * state.rules.hiring_cost
    company.workers += workers
    company.salesmen += salesmen
    company.cash -= cost
    company.period_extra_fixed += cost
    if company.hire_row != company.row:
        company.hire_row = company.row
        company.hires_this_row = 0
    company.hires_this_row += total
    company.track_personnel()
    return ActionOutcome(True, f"hired {workers} workers, {salesmen} salesmen", cost)


def _reassign(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    count = int(params.get("count", 1))
    cost = count * state.rules.reassignment_cost
    if params["direction"] == REASSIGN_TO_SALESMEN:
        company.workers -= count
        company.salesmen += count
        moved = "workers to salesmen"
    else:
        company.salesmen -= count
        company.workers += count
        moved = "salesmen to workers"
    company.cash -= cost
    company.period_extra_fixed += cost
    company.track_personnel()
    return ActionOutcome(True, f"reassigned {count} {moved}", cost)


def _buy_chip(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    chip = params["chip"]
    expedited = params.get("expedited", False)
    price = chip_price(state, expedited)
    immediate = expedited or state.period == state.rules.first_period
    company.cash -= price
    if immediate:
        company.chips[chip] += 1
    else:
        company.next_chips[chip] += 1
    kind = "expedited" if expedited else "normal"
    company.chip_purchases[kind][chip] += 1
    company.last_chip_row = company.row
    when = "now" if immediate else "next period"
    return ActionOutcome(True, f"{kind} {chip} chip ({when})", price)


def _buy_machine(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    machine_type = params["machine_type"]
    cost = state.rules.machine_cost[machine_type]
    company.cash -= cost
    company.machines.append(Machine(machine_type=machine_type, attachments=0, book_value=cost))
    return ActionOutcome(True, f"bought {machine_type} machine", cost)


def _sell_machine(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    machine = company.machines.pop(int(params["machine_index"]))
    proceeds = floor_int(machine.book_value * state.rules.machine_sale_ratio)
    loss = machine.book_value - proceeds
    company.cash += proceeds
    company.period_special_loss += loss
    company.total_special_loss += loss
    return ActionOutcome(True, f"sold {machine.machine_type} machine (loss {loss})", proceeds)


def _buy_attachment(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    machine = company.machines[int(params["machine_index"])]
    cost = state.rules.attachment_cost
    company.cash -= cost
    machine.attachments += 1
    machine.book_value += cost
    return ActionOutcome(True, "attachment fitted", cost)


def _buy_warehouse(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    cost = state.rules.warehouse_cost
    company.cash -= cost
    company.warehouses += 1
    return ActionOutcome(True, "warehouse rented", cost)


def _buy_computer(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    cost = state.rules.computer_cost
    company.cash -= cost
    company.chips["computer"] = 1
    return ActionOutcome(True, "computer chip", cost)


def _buy_insurance(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    cost = state.rules.insurance_cost
    company.cash -= cost
    company.chips["insurance"] = 1
    return ActionOutcome(True, "insurance chip", cost)


def _borrow_long_term(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    amount = int(params["amount"])
    interest = ceil_int(amount * state.rules.long_term_rate)
    company.long_term_loan += amount
    company.cash += amount - interest
    company.period_interest += interest
    return ActionOutcome(True, f"long-term loan {amount} (interest {interest})", amount)


def _do_nothing(company: Company, params: Dict, state: GameState) -> ActionOutcome:
    return ActionOutcome(True, "no action", 0)


EXECUTORS: Dict[str, Callable[[Company, Dict, GameState], ActionOutcome]] = {
    ACTION_SELL: _sell,
    ACTION_BUY_MATERIALS: _buy_materials,
    ACTION_PRODUCE: _produce,
    ACTION_HIRE: _hire,
    ACTION_REASSIGN: _reassign,
    ACTION_BUY_CHIP: _buy_chip,
    ACTION_BUY_MACHINE: _buy_machine,
    ACTION_SELL_MACHINE: _sell_machine,
    ACTION_BUY_ATTACHMENT: _buy_attachment,
    ACTION_BUY_WAREHOUSE: _buy_warehouse,
    ACTION_BUY_COMPUTER: _buy_computer,
    ACTION_BUY_INSURANCE: _buy_insurance,
    ACTION_BORROW_LONG_TERM: _borrow_long_term,
    ACTION_DO_NOTHING: _do_nothing,
}


def execute_action(action: Optional[Action], company_id: int, state: GameState) -> ActionOutcome:
    """
    Validate and execute one action for a company.

    Does not advance the row counter; the driver owns row consumption.

    Args:
        action: Proposed action (None means do nothing)
        company_id: Acting company
        state: Game state to mutate

    Returns:
        ActionOutcome; rejected actions mutate nothing but the log
    """
    if action is None:
        action = Action(ACTION_DO_NOTHING, {})

    company = state.companies[company_id]
    verdict = can_execute(action.action_type, action.params, company_id, state)
    if not verdict.valid:
        company.add_log(state.period, LOG_REJECTION, action.action_type, verdict.reason)
        return ActionOutcome(False, verdict.reason)

    outcome = EXECUTORS[action.action_type](company, action.params or {}, state)
    if action.action_type in PERIOD_START_ACTIONS:
        company.start_actions += 1

    if not outcome.queued:
        company.add_log(state.period, LOG_DECISION, action.action_type, outcome.reason, outcome.amount)
    check_company(company, state)
    check_markets(state)
    return outcome
