"""
Risk Event System.

Maps a drawn risk card to its category and applies the effect to the
drawing company. The common purchase card reaches every company. Unmapped
ids apply nothing.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from mgsim.actions import cover_negative_cash, record_opportunity_sale
from mgsim.capacity import free_storage, manufacturing_capacity, sales_capacity, sellable_quantity
from mgsim.invariants import check_company
from mgsim.rules import (
    RISK_CLAIM,
    RISK_EDUCATION_SUCCESS,
    RISK_CONSUMER_MOVEMENT,
    RISK_CUSTOMER_BANKRUPTCY,
    RISK_RESEARCH_FAILURE,
    RISK_ADVERTISING_SUCCESS,
    RISK_LABOR_ACCIDENT,
    RISK_ADVERTISING_FAILURE,
    RISK_SPECIAL_SERVICE,
    RISK_RETURNED_GOODS,
    RISK_COMPUTER_TROUBLE,
    RISK_EXCLUSIVE_SALE,
    RISK_MANUFACTURING_ERROR,
    RISK_WAREHOUSE_FIRE,
    RISK_REFERRAL_HIRE,
    RISK_RESEARCH_SUCCESS,
    RISK_COMMON_PURCHASE,
    RISK_STRIKE,
    RISK_THEFT,
    RISK_LABOR_DISPUTE,
    RISK_DESIGN_TROUBLE,
    RISK_WORKER_RETIRES,
    RISK_BUSINESS_CYCLE,
    RISK_EDUCATION_FAILURE,
    RISK_SALESMAN_RETIRES,
    RISK_PRESIDENT_ILL,
    RISK_DEAD_STOCK,
    RISK_MACHINE_BREAKDOWN,
)
from mgsim.scheduler import turn_order
from mgsim.schema import ACTION_SELL, ACTION_PRODUCE
from mgsim.state import Company, GameState, LOG_RISK


# Effect constants not covered by the rule table
BANKRUPTCY_LOSS = 30
SPECIAL_SERVICE_PRICE = 10
SPECIAL_SERVICE_MAX = 5
COMMON_PURCHASE_PRICE = 12
COMMON_PURCHASE_MAX = 3
COMMON_PURCHASE_MIN = 2
FIRE_PAYOUT_PER_UNIT = 8
THEFT_LOSS = 2
THEFT_PAYOUT_PER_UNIT = 10
DEAD_STOCK_LIMIT = 20
DEAD_STOCK_PAYOUT_PER_UNIT = 10


@dataclass
class RiskOutcome:
    card_id: int
    category: str
    detail: str
    amount: int = 0

    def to_dict(self):
        return {
            "card_id": self.card_id,
            "category": self.category,
            "detail": self.detail,
            "amount": self.amount,
        }


# =============================================================================
# HELPERS
# =============================================================================

def _fixed_penalty(company: Company, amount: int) -> int:
    company.cash -= amount
    company.period_extra_fixed += amount
    return amount


def _forfeit_chip(company: Company, chip: str) -> bool:
    if company.chips.get(chip, 0) > 0:
        company.chips[chip] -= 1
        return True
    if company.next_chips.get(chip, 0) > 0:
        company.next_chips[chip] -= 1
        return True
    return False


def _block_next_row(company: Company, action_type: str):
    next_row = company.row + 1
    if company.blocked_row != next_row:
        company.blocked = set()
    company.blocked.add(action_type)
    company.blocked_row = next_row


def _opportunity_sale(company: Company, state: GameState, limit: int) -> Tuple[str, int]:
    rules = state.rules
    quantity = min(rules.opportunity_max_quantity, limit, sellable_quantity(company, state))
    if quantity <= 0:
        return "no products to sell", 0
    revenue = record_opportunity_sale(company, quantity, rules.opportunity_price)
    return f"sold {quantity} at {rules.opportunity_price}", revenue


def _cheap_materials(
    company: Company, state: GameState, price: int, max_quantity: int, min_affordable: int = 1
) -> Tuple[str, int]:
    """Discounted material purchase; capped at manufacturing capacity after the first period."""
    rules = state.rules
    affordable = min(max_quantity, max(0, company.cash) // price)
    if affordable < min_affordable:
        return "cannot afford materials", 0
    quantity = min(affordable, free_storage(company, rules))
    if state.period > rules.first_period:
        quantity = min(quantity, manufacturing_capacity(company, rules))
    if quantity <= 0:
        return "no room or capacity for materials", 0
    cost = quantity * price
    company.cash -= cost
    company.materials += quantity
    company.period_material_cost += cost
    return f"bought {quantity} materials at {price}", cost


def _insurance_payout(company: Company, lost: int, per_unit: int) -> int:
    if lost <= 0 or company.chips.get("insurance", 0) <= 0:
        return 0
    payout = lost * per_unit
    company.chips["insurance"] -= 1
    company.period_insurance_claimed = True
    company.cash += payout
    company.period_special_gain += payout
    return payout


# =============================================================================
# EFFECTS
# =============================================================================

def _claim(company, state):
    return "claim settled", _fixed_penalty(company, 5)


def _education_success(company, state):
    if company.chips.get("education", 0) <= 0:
        return "no education chip", 0
    return _opportunity_sale(company, state, sales_capacity(company))


def _consumer_movement(company, state):
    _block_next_row(company, ACTION_SELL)
    return "sales blocked next row", 0


def _customer_bankruptcy(company, state):
    if state.period == state.rules.first_period:
        return "waived in first period", 0
    company.cash -= BANKRUPTCY_LOSS
    company.period_special_loss += BANKRUPTCY_LOSS
    company.total_special_loss += BANKRUPTCY_LOSS
    return "customer bankrupt", BANKRUPTCY_LOSS


def _research_failure(company, state):
    lost = _forfeit_chip(company, "research")
    return ("research chip lost" if lost else "no research chip"), 0


def _advertising_success(company, state):
    advertising = company.chips.get("advertising", 0)
    if advertising <= 0:
        return "no advertising chip", 0
    return _opportunity_sale(company, state, advertising * 2)


def _labor_accident(company, state):
    _block_next_row(company, ACTION_PRODUCE)
    return "production blocked next row", 0


def _advertising_failure(company, state):
    lost = _forfeit_chip(company, "advertising")
    return ("advertising chip lost" if lost else "no advertising chip"), 0


def _special_service(company, state):
    return _cheap_materials(company, state, SPECIAL_SERVICE_PRICE, SPECIAL_SERVICE_MAX)


def _returned_goods(company, state):
    rules = state.rules
    if state.period == rules.first_period:
        return "waived in first period", 0
    if free_storage(company, rules) < 1:
        return "no room for returned product", 0
    refund = rules.returned_goods_price
    company.products += 1
    company.cash -= refund
    company.period_sales -= refund
    company.total_sales -= refund
    if company.period_quantity > 0:
        company.period_quantity -= 1
        company.total_quantity -= 1
    return "one product returned", refund


def _computer_trouble(company, state):
    return "computer trouble", _fixed_penalty(company, 10)


def _exclusive_sale(company, state):
    return _opportunity_sale(company, state, company.salesmen * 2)


def _manufacturing_error(company, state):
    if company.wip <= 0:
        return "no work in progress", 0
    company.wip -= 1
    return "one work in progress lost", 0


def _warehouse_fire(company, state):
    lost = company.materials
    company.materials = 0
    payout = _insurance_payout(company, lost, FIRE_PAYOUT_PER_UNIT)
    return f"lost {lost} materials, insurance {payout}", payout


def _referral_hire(company, state):
    company.workers += 1
    company.track_personnel()
    return "worker joined", _fixed_penalty(company, state.rules.hiring_cost)


def _research_success(company, state):
    research = company.chips.get("research", 0)
    if research <= 0:
        return "no research chip", 0
    return _opportunity_sale(company, state, min(research * 2, sales_capacity(company)))


def _common_purchase(company, state):
    """Every company, in turn order, may buy discounted materials."""
    result = _cheap_materials(company, state, COMMON_PURCHASE_PRICE, COMMON_PURCHASE_MAX, COMMON_PURCHASE_MIN)
    for other_id in turn_order(state):
        if other_id == company.company_id:
            continue
        other = state.companies[other_id]
        detail, amount = _cheap_materials(other, state, COMMON_PURCHASE_PRICE, COMMON_PURCHASE_MAX, COMMON_PURCHASE_MIN)
        drawn = cover_negative_cash(other, state)
        if drawn:
            detail = f"{detail}; short-term loan {drawn}"
        other.add_log(state.period, LOG_RISK, f"RISK:{RISK_COMMON_PURCHASE}", f"drawn by {company.name}: {detail}", amount)
        check_company(other, state)
    return result


def _skip_one(company, state):
    company.skip_turns += 1
    return "skip one turn", 0


def _theft(company, state):
    lost = min(THEFT_LOSS, company.products)
    company.products -= lost
    payout = _insurance_payout(company, lost, THEFT_PAYOUT_PER_UNIT)
    return f"lost {lost} products, insurance {payout}", payout


def _labor_dispute(company, state):
    company.skip_turns += 2
    return "skip two turns", 0


def _design_trouble(company, state):
    return "design trouble", _fixed_penalty(company, 10)


def _worker_retires(company, state):
    if company.workers <= 0:
        return "no worker to retire", 0
    company.workers -= 1
    return "worker retired", _fixed_penalty(company, state.rules.retirement_cost)


def _business_cycle(company, state):
    state.is_reversed = not state.is_reversed
    return "turn order reversed", 0


def _education_failure(company, state):
    lost = _forfeit_chip(company, "education")
    return ("education chip lost" if lost else "no education chip"), 0


def _salesman_retires(company, state):
    if company.salesmen <= 0:
        return "no salesman to retire", 0
    company.salesmen -= 1
    return "salesman retired", _fixed_penalty(company, state.rules.retirement_cost)


def _dead_stock(company, state):
    excess = company.total_inventory() - DEAD_STOCK_LIMIT
    if excess <= 0:
        return "no dead stock", 0
    removed = excess
    for stock in ("products", "wip", "materials"):
        take = min(excess, getattr(company, stock))
        setattr(company, stock, getattr(company, stock) - take)
        excess -= take
    payout = removed * DEAD_STOCK_PAYOUT_PER_UNIT
    company.cash += payout
    company.period_special_gain += payout
    return f"{removed} dead stock removed", payout


def _machine_breakdown(company, state):
    return "machine breakdown", _fixed_penalty(company, 5)


EFFECTS: Dict[str, Callable] = {
    RISK_CLAIM: _claim,
    RISK_EDUCATION_SUCCESS: _education_success,
    RISK_CONSUMER_MOVEMENT: _consumer_movement,
    RISK_CUSTOMER_BANKRUPTCY: _customer_bankruptcy,
    RISK_RESEARCH_FAILURE: _research_failure,
    RISK_ADVERTISING_SUCCESS: _advertising_success,
    RISK_LABOR_ACCIDENT: _labor_accident,
    RISK_ADVERTISING_FAILURE: _advertising_failure,
    RISK_SPECIAL_SERVICE: _special_service,
    RISK_RETURNED_GOODS: _returned_goods,
    RISK_COMPUTER_TROUBLE: _computer_trouble,
    RISK_EXCLUSIVE_SALE: _exclusive_sale,
    RISK_MANUFACTURING_ERROR: _manufacturing_error,
    RISK_WAREHOUSE_FIRE: _warehouse_fire,
    RISK_REFERRAL_HIRE: _referral_hire,
    RISK_RESEARCH_SUCCESS: _research_success,
    RISK_COMMON_PURCHASE: _common_purchase,
    RISK_STRIKE: _skip_one,
    RISK_THEFT: _theft,
    RISK_LABOR_DISPUTE: _labor_dispute,
    RISK_DESIGN_TROUBLE: _design_trouble,
    RISK_WORKER_RETIRES: _worker_retires,
    RISK_BUSINESS_CYCLE: _business_cycle,
    RISK_EDUCATION_FAILURE: _education_failure,
    RISK_SALESMAN_RETIRES: _salesman_retires,
    RISK_PRESIDENT_ILL: _skip_one,
    RISK_DEAD_STOCK: _dead_stock,
    RISK_MACHINE_BREAKDOWN: _machine_breakdown,
}


def apply_risk(card_id: int, company_id: int, state: GameState) -> RiskOutcome:
    """
    Apply a risk card to the drawing company.

    Logs the effect, covers negative cash, and checks invariants. The row is
    consumed by the caller.
    """
    company = state.companies[company_id]
    category = state.rules.risk_cards.get(card_id, "unmapped")
    effect = EFFECTS.get(category)

    if effect is None:
        detail, amount = "no effect", 0
    else:
        detail, amount = effect(company, state)

    drawn = cover_negative_cash(company, state)
    if drawn:
        detail = f"{detail}; short-term loan {drawn}"

    company.add_log(state.period, LOG_RISK, f"RISK_{card_id}:{category}", detail, amount)
    check_company(company, state)
    return RiskOutcome(card_id=card_id, category=category, detail=detail, amount=amount)


def draw_risk(company_id: int, state: GameState) -> RiskOutcome:
    """Draw from the risk deck and apply the card."""
    card_id = state.risk_deck.draw()
    return apply_risk(card_id, company_id, state)
