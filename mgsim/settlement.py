"""
Period-End Settlement.

Financial close for each company: wages, depreciation, fees, chip carrying
cost, warehouse forfeiture, loan service, profit, tax, equity, negative
cash cover and chip carryover.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List

from mgsim.actions import cover_negative_cash
from mgsim.capacity import inventory_value
from mgsim.invariants import check_company, check_markets
from mgsim.mechanics import ceil_int, round_half_up
from mgsim.rules import STRATEGIC_CHIPS
from mgsim.scheduler import finish_period, transition
from mgsim.state import Company, GameState, LOG_SETTLEMENT, PHASE_SETTLEMENT


@dataclass
class SettlementBreakdown:
    """Every line of one company's period close."""
    company_id: int
    period: int
    wage: int = 0
    depreciation: int = 0
    computer_fee: int = 0
    insurance_fee: int = 0
    chip_cost: int = 0
    warehouse_fee: int = 0
    discarded: int = 0
    long_term_repay: int = 0
    short_term_repay: int = 0
    short_term_interest: int = 0
    interest: int = 0
    extra_fixed: int = 0
    fixed_cost: int = 0
    sales: int = 0
    quantity: int = 0
    material_cost: int = 0
    processing_cost: int = 0
    start_inventory: int = 0
    end_inventory: int = 0
    variable_cost: int = 0
    marginal_profit: int = 0
    special_loss: int = 0
    special_gain: int = 0
    profit: int = 0
    tax: int = 0
    equity_before: int = 0
    equity_after: int = 0
    cash_after: int = 0
    short_term_drawn: int = 0
    carried_chips: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)


# =============================================================================
# COST LINES
# =============================================================================

def compute_wage(company: Company, state: GameState) -> int:
    """
    Period wage bill.

    First period pays workers only. Later periods pay machines, workers and
    salesmen at the dice-adjusted unit, plus half a unit per peak head.
    """
    rules = state.rules
    base = rules.base_wage[state.period]
    if state.period == rules.first_period:
        return company.workers * base

    unit = round_half_up(base * state.wage_multiplier)
    half = round_half_up(unit / 2)
    return (
        len(company.machines) * unit
        + company.workers * unit
        + company.salesmen * unit
        + half * company.peak_personnel
    )


def apply_depreciation(company: Company, state: GameState) -> int:
    total = 0
    for machine in company.machines:
        amount = state.rules.depreciation_for(machine.machine_type, machine.attachments, state.period)
        machine.book_value = max(0, machine.book_value - amount)
        total += amount
    return total


def carried_allowance(company: Company, state: GameState) -> int:
    """Chips held now that will carry into the next period."""
    cap = state.rules.period2_carryover_cap
    reduction = state.rules.period2_carryover_reduction
    return sum(min(max(company.chips.get(c, 0) - reduction, 0), cap) for c in STRATEGIC_CHIPS)


def compute_chip_cost(company: Company, state: GameState) -> int:
    rules = state.rules
    if state.period == rules.first_period:
        purchased = sum(company.chip_purchases["normal"].values())
        return max(0, purchased - carried_allowance(company, state)) * rules.chip_normal_cost

    carried = sum(company.carried_over.values())
    expedited = sum(company.chip_purchases["expedited"].values())
    return carried * rules.chip_normal_cost + expedited * rules.chip_expedited_cost


def forfeit_warehouses(company: Company, state: GameState) -> int:
    """Drop rented warehouses and discard stock beyond base storage, materials first."""
    company.warehouses = 0
    excess = company.materials + company.products - state.rules.storage_base
    discarded = 0
    if excess > 0:
        take = min(excess, company.materials)
        company.materials -= take
        excess -= take
        discarded += take
        take = min(excess, company.products)
        company.products -= take
        discarded += take
    return discarded


def service_loans(company: Company, state: GameState, breakdown: SettlementBreakdown):
    rules = state.rules

    long_repay = min(company.long_term_loan, ceil_int(company.long_term_loan * rules.long_term_min_repay))
    company.long_term_loan -= long_repay

    short_repay = min(company.short_term_loan, ceil_int(company.short_term_loan * rules.short_term_min_repay))
    company.short_term_loan -= short_repay
    short_interest = ceil_int(company.short_term_loan * rules.short_term_rate)

    company.cash -= long_repay + short_repay + short_interest
    company.period_interest += short_interest

    breakdown.long_term_repay = long_repay
    breakdown.short_term_repay = short_repay
    breakdown.short_term_interest = short_interest


def carry_chips(company: Company, state: GameState):
    """Apply the period-end chip carryover, then roll in next-period chips."""
    rules = state.rules
    if state.period == rules.first_period:
        for chip in STRATEGIC_CHIPS:
            held = company.chips.get(chip, 0) - rules.period2_carryover_reduction
            company.chips[chip] = min(max(held, 0), rules.period2_carryover_cap)
            company.carried_over[chip] = company.chips[chip]
        company.chips["computer"] = 0
        company.chips["insurance"] = 0
    else:
        for chip in company.chips:
            company.chips[chip] = 0
        for chip in STRATEGIC_CHIPS:
            company.carried_over[chip] = 0

    for chip in STRATEGIC_CHIPS:
        incoming = company.next_chips.get(chip, 0)
        company.chips[chip] += incoming
        company.carried_over[chip] += incoming
        company.next_chips[chip] = 0


# =============================================================================
# SETTLEMENT
# =============================================================================

def settle_company(company: Company, state: GameState) -> SettlementBreakdown:
    """
    Close the period for one company.

    Args:
        company: Company to settle
        state: Game state (period, dice multiplier and rules)

    Returns:
        SettlementBreakdown with every line of the close
    """
    rules = state.rules
    b = SettlementBreakdown(company_id=company.company_id, period=state.period)
    b.equity_before = company.equity

    b.wage = compute_wage(company, state)
    company.cash -= b.wage

    b.depreciation = apply_depreciation(company, state)

    if company.chips.get("computer", 0) > 0:
        b.computer_fee = rules.computer_cost
    if company.chips.get("insurance", 0) > 0 or company.period_insurance_claimed:
        b.insurance_fee = rules.insurance_cost

    b.chip_cost = compute_chip_cost(company, state)

    b.warehouse_fee = company.warehouses * rules.warehouse_cost
    b.discarded = forfeit_warehouses(company, state)

    service_loans(company, state, b)

    b.interest = company.period_interest
    b.extra_fixed = company.period_extra_fixed
    b.fixed_cost = (
        b.wage + b.depreciation + b.computer_fee + b.insurance_fee
        + b.chip_cost + b.warehouse_fee + b.interest + b.extra_fixed
    )

    b.sales = company.period_sales
    b.quantity = company.period_quantity
    b.material_cost = company.period_material_cost
    b.processing_cost = company.period_processing_cost
    b.start_inventory = company.start_inventory
    b.end_inventory = inventory_value(company, rules)
    b.variable_cost = b.material_cost + b.processing_cost + b.start_inventory - b.end_inventory
    b.marginal_profit = b.sales - b.variable_cost
    b.special_loss = company.period_special_loss
    b.special_gain = company.period_special_gain
    b.profit = b.marginal_profit - b.fixed_cost - b.special_loss + b.special_gain

    if b.profit > 0:
        b.tax = int(b.profit * rules.tax_rate)
    company.cash -= b.tax

    company.equity += b.profit - b.tax
    b.equity_after = company.equity
    company.total_fixed_cost += b.fixed_cost

    b.short_term_drawn = cover_negative_cash(company, state)
    b.cash_after = company.cash

    carry_chips(company, state)
    b.carried_chips = {c: company.chips[c] for c in STRATEGIC_CHIPS}

    company.add_log(
        state.period, LOG_SETTLEMENT, "SETTLEMENT",
        f"F={b.fixed_cost} MQ={b.marginal_profit} G={b.profit} tax={b.tax}",
        b.profit,
    )
    company.reset_period_counters()
    check_company(company, state)
    return b


def settle_period(state: GameState) -> List[SettlementBreakdown]:
    """Settle every company, then close the period on the shared state."""
    transition(state, PHASE_SETTLEMENT)
    breakdowns = [settle_company(company, state) for company in state.companies]
    check_markets(state)
    finish_period(state)
    return breakdowns
