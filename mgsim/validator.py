"""
Action Validator.

can_execute is the single gateway deciding whether a company may take an
action right now. Execution routines call it again before mutating.
"""

from typing import Dict, Any, Optional

from mgsim.capacity import (
    manufacturing_capacity,
    sales_capacity,
    storage_capacity,
)
from mgsim.rules import STRATEGIC_CHIPS
from mgsim.schema import (
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
    ALL_ACTIONS,
    PERIOD_START_ACTIONS,
    MAX_PERIOD_START_ACTIONS,
    REASSIGN_DIRECTIONS,
    REASSIGN_TO_SALESMEN,
    ValidationResult,
    ok,
    reject,
)
from mgsim.state import Company, GameState, PHASE_PERIOD_START, PHASE_MID_PERIOD


def _int_param(params: Dict[str, Any], key: str, default: Optional[int] = None) -> Optional[int]:
    value = params.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _str_param(params: Dict[str, Any], key: str) -> Optional[str]:
    value = params.get(key)
    return value if isinstance(value, str) else None


def _flag_param(params: Dict[str, Any], key: str, default: bool = False) -> Optional[bool]:
    """Boolean parameter; anything but a real bool is malformed."""
    value = params.get(key, default)
    return value if isinstance(value, bool) else None


def chip_price(state: GameState, expedited: bool) -> int:
    rules = state.rules
    if expedited and state.period > rules.first_period:
        return rules.chip_expedited_cost
    return rules.chip_normal_cost


def remaining_loan_limit(company: Company, state: GameState) -> int:
    limit = state.rules.loan_limit(state.period, company.equity)
    return max(0, limit - company.long_term_loan)


def hires_in_current_row(company: Company) -> int:
    if company.hire_row == company.row:
        return company.hires_this_row
    return 0


# =============================================================================
# PER-ACTION CHECKS
# =============================================================================

def _check_buy_chip(company: Company, params: Dict, state: GameState) -> ValidationResult:
    rules = state.rules
    chip = _str_param(params, "chip")
    if chip not in STRATEGIC_CHIPS:
        return reject(f"unknown chip: {params.get('chip')}")

    expedited = _flag_param(params, "expedited")
    if expedited is None:
        return reject("expedited must be true or false")
    if expedited and state.period == rules.first_period:
        return reject("expedited chips not available in first period")

    if company.last_chip_row == company.row:
        return reject("one chip purchase per row")

    immediate = expedited or state.period == rules.first_period
    if immediate:
        if company.chips.get(chip, 0) + 1 > rules.chip_limit(chip, state.period):
            return reject(f"{chip} holding limit reached")
    else:
        if company.next_chips.get(chip, 0) + 1 > rules.chip_limit(chip, state.period + 1):
            return reject(f"{chip} next-period limit reached")

    if company.cash < chip_price(state, expedited):
        return reject("insufficient cash")
    return ok()


def _check_sell(company: Company, params: Dict, state: GameState) -> ValidationResult:
    rules = state.rules
    market = state.market(_str_param(params, "market"))
    if market is None:
        return reject(f"unknown market: {params.get('market')}")

    quantity = _int_param(params, "quantity")
    price = _int_param(params, "price", market.sell_price)
    if quantity is None or price is None:
        return reject("invalid sale parameters")

    if company.salesmen < 1:
        return reject("no salesmen")
    if quantity < rules.min_sale_quantity:
        return reject(f"minimum sale is {rules.min_sale_quantity}")
    if market.closed:
        return reject(f"{market.name} is closed")
    if market.remaining() < rules.min_sale_quantity or market.remaining() < quantity:
        return reject(f"{market.name} capacity exhausted")
    if price < 1 or price > market.sell_price:
        return reject(f"price must be between 1 and {market.sell_price}")
    if quantity > company.products:
        return reject("not enough products")
    if quantity > sales_capacity(company):
        return reject("exceeds sales capacity")
    if state.period == rules.last_period:
        if company.total_inventory() - quantity < rules.final_period_inventory_reserve:
            return reject("final-period inventory reserve")
    return ok()


def _check_buy_materials(company: Company, params: Dict, state: GameState) -> ValidationResult:
    rules = state.rules
    market = state.market(_str_param(params, "market"))
    if market is None:
        return reject(f"unknown market: {params.get('market')}")

    quantity = _int_param(params, "quantity")
    if quantity is None or quantity < 1:
        return reject("quantity must be at least 1")
    if quantity > market.max_stock:
        return reject(f"{market.name} supplies at most {market.max_stock}")
    if market.closed:
        return reject(f"{market.name} is closed")

    if state.period == rules.first_period and state.first_round:
        if quantity > rules.period2_first_round_material_cap:
            return reject(f"first round purchase capped at {rules.period2_first_round_material_cap}")
    elif state.period > rules.first_period:
        cap = manufacturing_capacity(company, rules)
        if quantity > cap:
            return reject(f"purchase capped at manufacturing capacity {cap}")

    if company.materials + quantity + company.products > storage_capacity(company, rules):
        return reject("exceeds storage")
    if company.cash < quantity * market.buy_price:
        return reject("insufficient cash")
    return ok()


def _check_produce(company: Company, params: Dict, state: GameState) -> ValidationResult:
    rules = state.rules
    to_wip = _int_param(params, "material_to_wip", 0)
    to_product = _int_param(params, "wip_to_product", 0)
    if to_wip is None or to_product is None:
        return reject("invalid production parameters")

    if to_wip == 1 and to_product == 1:
        return reject("(1, 1) production is not allowed")
    if to_wip < 0 or to_product < 0:
        return reject("negative production")
    if to_wip + to_product < 1:
        return reject("nothing to produce")
    if to_wip > company.materials:
        return reject("not enough materials")
    if to_product > company.wip:
        return reject("not enough work in progress")

    new_wip = company.wip - to_product + to_wip
    if new_wip > rules.wip_cap:
        return reject(f"work in progress capped at {rules.wip_cap}")

    stock_after = company.materials - to_wip + company.products + to_product
    if stock_after > storage_capacity(company, rules):
        return reject("exceeds storage")
    if to_product > manufacturing_capacity(company, rules):
        return reject("exceeds manufacturing capacity")
    if company.cash < (to_wip + to_product) * rules.processing_cost:
        return reject("insufficient cash")
    return ok()


def _check_hire(company: Company, params: Dict, state: GameState) -> ValidationResult:
    rules = state.rules
    workers = _int_param(params, "workers", 0)
    salesmen = _int_param(params, "salesmen", 0)
    if workers is None or salesmen is None or workers < 0 or salesmen < 0:
        return reject("invalid hiring parameters")

    total = workers + salesmen
    if total < 1:
        return reject("nobody to hire")
    if total + hires_in_current_row(company) > rules.max_hires_per_row:
        return reject(f"at most {rules.max_hires_per_row} hires per row")
    if company.cash < total * rules.hiring_cost:
        return reject("insufficient cash")
    return ok()


def _check_reassign(company: Company, params: Dict, state: GameState) -> ValidationResult:
    """Move staff between the worker and salesman pools."""
    rules = state.rules
    direction = _str_param(params, "direction")
    if direction not in REASSIGN_DIRECTIONS:
        return reject(f"unknown reassignment direction: {params.get('direction')}")

    count = _int_param(params, "count", 1)
    if count is None or count < 1:
        return reject("reassignment count must be at least 1")
    if count > rules.max_reassign_per_row:
        return reject(f"at most {rules.max_reassign_per_row} reassignments per row")

    pool = company.workers if direction == REASSIGN_TO_SALESMEN else company.salesmen
    if count > pool:
        return reject("not enough staff to reassign")
    if company.cash < count * rules.reassignment_cost:
        return reject("insufficient cash")
    return ok()


def _machine_at(company: Company, params: Dict):
    index = _int_param(params, "machine_index")
    if index is None or index < 0 or index >= len(company.machines):
        return None
    return company.machines[index]


def _check_buy_machine(company: Company, params: Dict, state: GameState) -> ValidationResult:
    machine_type = _str_param(params, "machine_type")
    cost = state.rules.machine_cost.get(machine_type) if machine_type is not None else None
    if cost is None:
        return reject(f"unknown machine type: {params.get('machine_type')}")
    if company.cash < cost:
        return reject("insufficient cash")
    return ok()


def _check_sell_machine(company: Company, params: Dict, state: GameState) -> ValidationResult:
    if _machine_at(company, params) is None:
        return reject("no such machine")
    if len(company.machines) <= 1:
        return reject("cannot sell the last machine")
    return ok()


def _check_buy_attachment(company: Company, params: Dict, state: GameState) -> ValidationResult:
    rules = state.rules
    machine = _machine_at(company, params)
    if machine is None:
        return reject("no such machine")
    if machine.machine_type != "small":
        return reject("attachments fit small machines only")
    if machine.attachments >= rules.max_attachments:
        return reject("machine already has an attachment")
    if company.cash < rules.attachment_cost:
        return reject("insufficient cash")
    return ok()


def _check_buy_warehouse(company: Company, params: Dict, state: GameState) -> ValidationResult:
    if company.cash < state.rules.warehouse_cost:
        return reject("insufficient cash")
    return ok()


def _check_service_chip(chip: str, cost: int, company: Company) -> ValidationResult:
    if company.chips.get(chip, 0) > 0:
        return reject(f"{chip} chip already held")
    if company.cash < cost:
        return reject("insufficient cash")
    return ok()


def _check_borrow(company: Company, params: Dict, state: GameState) -> ValidationResult:
    if state.period <= state.rules.first_period:
        return reject("long-term loans unavailable in first period")
    amount = _int_param(params, "amount")
    if amount is None or amount < 1:
        return reject("loan amount must be positive")
    limit = remaining_loan_limit(company, state)
    if amount > limit:
        return reject(f"loan limit is {limit}")
    return ok()


# =============================================================================
# GATEWAY
# =============================================================================

def can_execute(action_type: str, params: Dict[str, Any], company_id: int, state: GameState) -> ValidationResult:
    """
    Decide whether a company may take an action in the current state.

    Args:
        action_type: One of the ACTION_* identifiers
        params: Action parameters
        company_id: Acting company
        state: Current game state

    Returns:
        ValidationResult with a human-readable reason on rejection
    """
    if action_type not in ALL_ACTIONS:
        return reject(f"unknown action: {action_type}")
    if params is None:
        params = {}
    if not isinstance(params, dict):
        return reject("params must be a mapping")
    if company_id < 0 or company_id >= len(state.companies):
        return reject(f"unknown company: {company_id}")

    company = state.companies[company_id]
    rules = state.rules

    if company.row >= state.row_budget:
        return reject("no rows left this period")

    if action_type in PERIOD_START_ACTIONS:
        if state.phase != PHASE_PERIOD_START:
            return reject(f"{action_type} only allowed at period start")
        if company.start_actions >= MAX_PERIOD_START_ACTIONS:
            return reject("period-start actions exhausted")
    elif state.phase != PHASE_MID_PERIOD:
        if action_type == ACTION_BUY_CHIP:
            return reject("chip purchases not allowed at period start")
        return reject(f"{action_type} not allowed in phase {state.phase}")

    if action_type in company.blocked and company.blocked_row == company.row:
        return reject(f"{action_type} blocked this row")

    if action_type == ACTION_DO_NOTHING:
        return ok()
    if action_type == ACTION_BUY_CHIP:
        return _check_buy_chip(company, params, state)
    if action_type == ACTION_SELL:
        return _check_sell(company, params, state)
    if action_type == ACTION_BUY_MATERIALS:
        return _check_buy_materials(company, params, state)
    if action_type == ACTION_PRODUCE:
        return _check_produce(company, params, state)
    if action_type == ACTION_HIRE:
        return _check_hire(company, params, state)
    if action_type == ACTION_REASSIGN:
        return _check_reassign(company, params, state)
    if action_type == ACTION_BUY_MACHINE:
        return _check_buy_machine(company, params, state)
    if action_type == ACTION_SELL_MACHINE:
        return _check_sell_machine(company, params, state)
    if action_type == ACTION_BUY_ATTACHMENT:
        return _check_buy_attachment(company, params, state)
    if action_type == ACTION_BUY_WAREHOUSE:
        return _check_buy_warehouse(company, params, state)
    if action_type == ACTION_BUY_COMPUTER:
        return _check_service_chip("computer", rules.computer_cost, company)
    if action_type == ACTION_BUY_INSURANCE:
        return _check_service_chip("insurance", rules.insurance_cost, company)
    if action_type == ACTION_BORROW_LONG_TERM:
        return _check_borrow(company, params, state)
    return reject(f"unknown action: {action_type}")
