"""
Heuristic Decision Provider.

Reference non-learning provider so a full game can run end to end. It
enumerates candidate actions in the order its strategy prefers, keeps the
first one the validator accepts, and falls back to doing nothing. Any
randomness comes from the game's own RNG.
"""

from typing import Dict, List, Optional

from mgai.strategies import (
    Strategy,
    Aggressive,
    Balanced,
    DEFAULT_LINEUP,
    KIND_SELL,
    KIND_PRODUCE,
    KIND_MATERIALS,
    KIND_CHIP,
    KIND_HIRE,
    KIND_REASSIGN,
    KIND_MACHINE,
    KIND_ATTACHMENT,
    strategy_from_name,
)
from mgsim.capacity import (
    free_storage,
    manufacturing_capacity,
    sales_capacity,
    sellable_quantity,
)
from mgsim.schema import (
    Action,
    ACTION_SELL,
    ACTION_BUY_MATERIALS,
    ACTION_PRODUCE,
    ACTION_HIRE,
    ACTION_REASSIGN,
    ACTION_BUY_CHIP,
    ACTION_BUY_MACHINE,
    ACTION_BUY_ATTACHMENT,
    ACTION_BUY_COMPUTER,
    ACTION_BUY_INSURANCE,
    ACTION_BORROW_LONG_TERM,
    ACTION_DO_NOTHING,
    REASSIGN_TO_SALESMEN,
)
from mgsim.state import Company, GameState, PHASE_PERIOD_START
from mgsim.validator import can_execute, remaining_loan_limit


# =============================================================================
# CANDIDATE BUILDERS
# =============================================================================

def sell_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    """Sales at open markets, best displayed price first."""
    quantity_cap = min(sellable_quantity(company, state), sales_capacity(company))
    if quantity_cap < state.rules.min_sale_quantity:
        return []

    candidates = []
    for market in sorted(state.markets, key=lambda m: -m.sell_price):
        if market.closed:
            continue
        quantity = min(quantity_cap, market.remaining())
        if quantity < state.rules.min_sale_quantity:
            continue
        price = market.sell_price
        if market.needs_bid and strategy.price_cut > 0:
            price = max(1, price - state.roller.randint(0, strategy.price_cut))
        candidates.append(Action(ACTION_SELL, {"market": market.name, "price": price, "quantity": quantity}))
    return candidates


def produce_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    rules = state.rules
    capacity = manufacturing_capacity(company, rules)
    to_product = min(company.wip, capacity, max(0, free_storage(company, rules)))
    room = rules.wip_cap - company.wip + to_product
    to_wip = min(company.materials, capacity, room)
    if to_wip == 1 and to_product == 1:
        to_wip = 0
    if to_wip + to_product < 1:
        return []
    return [Action(ACTION_PRODUCE, {"material_to_wip": to_wip, "wip_to_product": to_product})]


def material_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    rules = state.rules
    wanted = strategy.materials_target - company.materials
    if wanted <= 0:
        return []

    candidates = []
    spendable = company.cash - strategy.cash_reserve
    for market in sorted(state.markets, key=lambda m: m.buy_price):
        if market.closed:
            continue
        quantity = min(wanted, market.max_stock, free_storage(company, rules), spendable // market.buy_price)
        if state.period == rules.first_period and state.first_round:
            quantity = min(quantity, rules.period2_first_round_material_cap)
        elif state.period > rules.first_period:
            quantity = min(quantity, manufacturing_capacity(company, rules))
        if quantity >= 1:
            candidates.append(Action(ACTION_BUY_MATERIALS, {"market": market.name, "quantity": quantity}))
            break
    return candidates


def chip_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    rules = state.rules
    if company.cash - rules.chip_normal_cost < strategy.cash_reserve:
        return []

    candidates = []
    first_period = state.period == rules.first_period
    for chip, target in strategy.chip_targets.items():
        held = company.chips.get(chip, 0) if first_period else company.next_chips.get(chip, 0)
        if held < target:
            candidates.append(Action(ACTION_BUY_CHIP, {"chip": chip, "expedited": False}))
        elif not first_period and company.chips.get(chip, 0) < 1 and isinstance(strategy, Aggressive):
            candidates.append(Action(ACTION_BUY_CHIP, {"chip": chip, "expedited": True}))
    return candidates


def hire_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    if company.cash - state.rules.hiring_cost < strategy.cash_reserve:
        return []
    workers = max(0, len(company.machines) - company.workers)
    salesmen = max(0, strategy.salesmen_target - company.salesmen)
    total = min(state.rules.max_hires_per_row, workers + salesmen)
    if total < 1:
        return []
    workers = min(workers, total)
    return [Action(ACTION_HIRE, {"workers": workers, "salesmen": total - workers})]


def reassign_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    """Move idle workers into sales when short of salesmen."""
    rules = state.rules
    spare = company.workers - len(company.machines)
    short = strategy.salesmen_target - company.salesmen
    count = min(spare, short, rules.max_reassign_per_row)
    if count < 1 or company.cash - count * rules.reassignment_cost < strategy.cash_reserve:
        return []
    return [Action(ACTION_REASSIGN, {"direction": REASSIGN_TO_SALESMEN, "count": count})]


def machine_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    if not isinstance(strategy, Aggressive) or len(company.machines) >= strategy.machine_target:
        return []
    candidates = []
    for machine_type in ("large", "small"):
        cost = state.rules.machine_cost[machine_type]
        if company.cash - cost >= strategy.cash_reserve:
            candidates.append(Action(ACTION_BUY_MACHINE, {"machine_type": machine_type}))
    return candidates


def attachment_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    if company.cash - state.rules.attachment_cost < strategy.cash_reserve:
        return []
    return [
        Action(ACTION_BUY_ATTACHMENT, {"machine_index": i})
        for i, m in enumerate(company.machines)
        if m.machine_type == "small" and m.attachments == 0
    ]


BUILDERS = {
    KIND_SELL: sell_candidates,
    KIND_PRODUCE: produce_candidates,
    KIND_MATERIALS: material_candidates,
    KIND_CHIP: chip_candidates,
    KIND_HIRE: hire_candidates,
    KIND_REASSIGN: reassign_candidates,
    KIND_MACHINE: machine_candidates,
    KIND_ATTACHMENT: attachment_candidates,
}


# =============================================================================
# PERIOD START
# =============================================================================

def period_start_candidates(company: Company, state: GameState, strategy: Strategy) -> List[Action]:
    rules = state.rules
    candidates = []

    if state.period > rules.first_period:
        limit = remaining_loan_limit(company, state)
        if isinstance(strategy, Aggressive):
            amount = int(limit * strategy.borrow_fraction)
        elif company.cash < strategy.cash_reserve * 2:
            amount = min(limit, strategy.cash_reserve * 2 - company.cash)
        else:
            amount = 0
        if amount >= 1:
            candidates.append(Action(ACTION_BORROW_LONG_TERM, {"amount": amount}))

    if strategy.buy_computer and company.cash - rules.computer_cost >= strategy.cash_reserve:
        candidates.append(Action(ACTION_BUY_COMPUTER, {}))
    if strategy.buy_insurance and company.cash - rules.insurance_cost >= strategy.cash_reserve:
        candidates.append(Action(ACTION_BUY_INSURANCE, {}))
    return candidates


# =============================================================================
# PROVIDER
# =============================================================================

class HeuristicPolicy:
    """
    Decision provider driven by a strategy.

    Callable with the provider contract: (company_id, state) -> Action or None.
    Returning None at period start ends the company's period-start actions.
    """

    def __init__(self, strategy: Strategy = None):
        self.strategy = strategy or Balanced()

    def __call__(self, company_id: int, state: GameState) -> Optional[Action]:
        company = state.companies[company_id]
        if state.phase == PHASE_PERIOD_START:
            return self._first_valid(period_start_candidates(company, state, self.strategy), company_id, state)

        for kind in self.strategy.priorities:
            builder = BUILDERS.get(kind)
            if builder is None:
                continue
            action = self._first_valid(builder(company, state, self.strategy), company_id, state)
            if action is not None:
                return action
        return Action(ACTION_DO_NOTHING, {})

    def _first_valid(self, candidates: List[Action], company_id: int, state: GameState) -> Optional[Action]:
        for action in candidates:
            if can_execute(action.action_type, action.params, company_id, state).valid:
                return action
        return None

    def describe(self) -> Dict:
        return {"provider": "heuristic", "strategy": self.strategy.name}


def lineup_provider(seat: int) -> HeuristicPolicy:
    """Heuristic provider for a seat, following the default lineup."""
    return HeuristicPolicy(strategy_from_name(DEFAULT_LINEUP[seat % len(DEFAULT_LINEUP)]))


def do_nothing_provider(company_id: int, state: GameState) -> Optional[Action]:
    """Provider that never acts."""
    if state.phase == PHASE_PERIOD_START:
        return None
    return Action(ACTION_DO_NOTHING, {})
