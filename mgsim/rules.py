"""
Rule Configuration.

Immutable table of every numeric constant the engine uses. A RuleConfig is
built once per run and attached to the GameState; nothing evaluates rules
against module-level mutable state.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Dict, List, Any, Optional, Tuple
import json
import os


class RuleConfigError(ValueError):
    """Raised when a rule table is inconsistent or cannot be loaded."""


# =============================================================================
# MARKETS
# =============================================================================

@dataclass(frozen=True)
class MarketSpec:
    """Static market definition."""
    name: str
    buy_price: int
    sell_price: int
    max_stock: int
    needs_bid: bool


DEFAULT_MARKETS: Tuple[MarketSpec, ...] = (
    MarketSpec("Sendai", 10, 40, 3, True),
    MarketSpec("Sapporo", 11, 36, 4, True),
    MarketSpec("Fukuoka", 12, 32, 6, True),
    MarketSpec("Nagoya", 13, 28, 9, True),
    MarketSpec("Osaka", 14, 24, 13, True),
    MarketSpec("Tokyo", 15, 20, 20, False),
    MarketSpec("Overseas", 16, 16, 100, False),
)


# =============================================================================
# RISK CARDS
# =============================================================================

# Risk effect categories
RISK_CLAIM = "claim"
RISK_EDUCATION_SUCCESS = "education_success"
RISK_CONSUMER_MOVEMENT = "consumer_movement"
RISK_CUSTOMER_BANKRUPTCY = "customer_bankruptcy"
RISK_RESEARCH_FAILURE = "research_failure"
RISK_ADVERTISING_SUCCESS = "advertising_success"
RISK_LABOR_ACCIDENT = "labor_accident"
RISK_ADVERTISING_FAILURE = "advertising_failure"
RISK_SPECIAL_SERVICE = "special_service"
RISK_RETURNED_GOODS = "returned_goods"
RISK_COMPUTER_TROUBLE = "computer_trouble"
RISK_EXCLUSIVE_SALE = "exclusive_sale"
RISK_MANUFACTURING_ERROR = "manufacturing_error"
RISK_WAREHOUSE_FIRE = "warehouse_fire"
RISK_REFERRAL_HIRE = "referral_hire"
RISK_RESEARCH_SUCCESS = "research_success"
RISK_COMMON_PURCHASE = "common_purchase"
RISK_STRIKE = "strike"
RISK_THEFT = "theft"
RISK_LABOR_DISPUTE = "labor_dispute"
RISK_DESIGN_TROUBLE = "design_trouble"
RISK_WORKER_RETIRES = "worker_retires"
RISK_BUSINESS_CYCLE = "business_cycle"
RISK_EDUCATION_FAILURE = "education_failure"
RISK_SALESMAN_RETIRES = "salesman_retires"
RISK_PRESIDENT_ILL = "president_ill"
RISK_DEAD_STOCK = "dead_stock"
RISK_MACHINE_BREAKDOWN = "machine_breakdown"


def _card_ranges(*spans: Tuple[int, int, str]) -> Dict[int, str]:
    table = {}
    for first, last, category in spans:
        for card_id in range(first, last + 1):
            table[card_id] = category
    return table


DEFAULT_RISK_CARDS: Dict[int, str] = _card_ranges(
    (1, 2, RISK_CLAIM),
    (3, 4, RISK_EDUCATION_SUCCESS),
    (5, 6, RISK_CONSUMER_MOVEMENT),
    (7, 8, RISK_CUSTOMER_BANKRUPTCY),
    (9, 11, RISK_RESEARCH_FAILURE),
    (12, 14, RISK_ADVERTISING_SUCCESS),
    (15, 16, RISK_LABOR_ACCIDENT),
    (17, 18, RISK_ADVERTISING_FAILURE),
    (19, 20, RISK_SPECIAL_SERVICE),
    (21, 23, RISK_RETURNED_GOODS),
    (24, 25, RISK_COMPUTER_TROUBLE),
    (26, 28, RISK_EXCLUSIVE_SALE),
    (29, 30, RISK_MANUFACTURING_ERROR),
    (31, 32, RISK_WAREHOUSE_FIRE),
    (33, 34, RISK_REFERRAL_HIRE),
    (35, 40, RISK_RESEARCH_SUCCESS),
    (41, 42, RISK_COMMON_PURCHASE),
    (43, 44, RISK_STRIKE),
    (45, 46, RISK_THEFT),
    (47, 48, RISK_LABOR_DISPUTE),
    (49, 50, RISK_DESIGN_TROUBLE),
    (51, 52, RISK_WORKER_RETIRES),
    (53, 54, RISK_BUSINESS_CYCLE),
    (55, 56, RISK_EDUCATION_FAILURE),
    (57, 58, RISK_SALESMAN_RETIRES),
    (59, 60, RISK_PRESIDENT_ILL),
    (61, 62, RISK_DEAD_STOCK),
    (63, 64, RISK_MACHINE_BREAKDOWN),
)


# =============================================================================
# RULE CONFIG
# =============================================================================

STRATEGIC_CHIPS = ("research", "education", "advertising")
SERVICE_CHIPS = ("computer", "insurance")
ALL_CHIPS = STRATEGIC_CHIPS + SERVICE_CHIPS


@dataclass(frozen=True)
class RuleConfig:
    """All numeric constants of the MG rulebook."""

    # Game structure
    company_count: int = 6
    first_period: int = 2
    last_period: int = 5
    row_budget: Dict[int, int] = field(default_factory=lambda: {2: 20, 3: 30, 4: 34, 5: 35})
    parent_bonus: int = 2
    research_bonus: int = 2

    # Wages
    base_wage: Dict[int, int] = field(default_factory=lambda: {2: 22, 3: 24, 4: 26, 5: 28})

    # Dice (periods >= 3)
    dice_low_max: int = 3
    wage_multiplier_by_dice: Dict[int, float] = field(default_factory=lambda: {
        1: 1.1, 2: 1.1, 3: 1.1, 4: 1.2, 5: 1.2, 6: 1.2
    })
    closed_markets_by_dice: Dict[int, Tuple[str, ...]] = field(default_factory=lambda: {
        1: ("Sendai",), 2: ("Sendai",), 3: ("Sendai",),
        4: ("Sendai", "Sapporo"), 5: ("Sendai", "Sapporo"), 6: ("Sendai", "Sapporo"),
    })
    dice_price_market: str = "Osaka"
    dice_price_offset: int = 20
    row_reduction_by_dice: Dict[int, int] = field(default_factory=lambda: {
        1: 0, 2: 0, 3: 0, 4: 0, 5: 0, 6: 0
    })

    # Markets
    markets: Tuple[MarketSpec, ...] = DEFAULT_MARKETS

    # Chips
    chip_normal_cost: int = 20
    chip_expedited_cost: int = 40
    computer_cost: int = 20
    insurance_cost: int = 5
    chip_limits: Dict[str, int] = field(default_factory=lambda: {
        "research": 5, "education": 1, "advertising": 5
    })
    period2_education_limit: int = 2
    period2_carryover_reduction: int = 1
    period2_carryover_cap: int = 3

    # Machines
    machine_cost: Dict[str, int] = field(default_factory=lambda: {"small": 100, "large": 200})
    machine_capacity: Dict[str, int] = field(default_factory=lambda: {"small": 1, "large": 4})
    attachment_cost: int = 30
    attachment_bonus: int = 1
    max_attachments: int = 1
    # depreciation keyed by machine class then period
    depreciation: Dict[str, Dict[int, int]] = field(default_factory=lambda: {
        "small": {2: 10, 3: 20, 4: 20, 5: 20},
        "small_attached": {2: 13, 3: 26, 4: 26, 5: 26},
        "large": {2: 20, 3: 40, 4: 40, 5: 40},
    })
    machine_sale_ratio: float = 0.7

    # Production / personnel
    processing_cost: int = 1
    hiring_cost: int = 5
    max_hires_per_row: int = 3
    retirement_cost: int = 5
    reassignment_cost: int = 5
    max_reassign_per_row: int = 5

    # Storage
    storage_base: int = 20
    warehouse_capacity: int = 12
    warehouse_cost: int = 20
    wip_cap: int = 10

    # Sales / materials
    min_sale_quantity: int = 2
    final_period_inventory_reserve: int = 10
    period2_first_round_material_cap: int = 3
    opportunity_price: int = 32
    opportunity_max_quantity: int = 5
    returned_goods_price: int = 20

    # Inventory valuation (VQ)
    material_value: int = 13
    wip_value: int = 14
    product_value: int = 15

    # Loans
    long_term_rate: float = 0.10
    short_term_rate: float = 0.20
    long_term_min_repay: float = 0.10
    short_term_min_repay: float = 0.20
    short_term_draw_unit: int = 50
    loan_multiplier_low: float = 0.5
    loan_multiplier_high: float = 1.0
    loan_high_min_period: int = 4
    loan_high_equity: int = 300

    # Tax
    tax_rate: float = 0.5

    # Victory
    target_equity: int = 450
    victory_min_inventory: int = 10
    victory_min_chips: int = 3

    # Decks
    decision_tokens: int = 60
    risk_tokens: int = 15
    risk_cards: Dict[int, str] = field(default_factory=lambda: dict(DEFAULT_RISK_CARDS))

    # Initial company state (period 2 start, after the period-start phase)
    initial_company: Dict[str, Any] = field(default_factory=lambda: {
        "cash": 112,
        "equity": 283,
        "materials": 1,
        "wip": 2,
        "products": 1,
        "workers": 1,
        "salesmen": 1,
        "machines": [{"machine_type": "small", "attachments": 0, "book_value": 90}],
        "warehouses": 0,
        "chips": {"research": 0, "education": 0, "advertising": 0, "computer": 1, "insurance": 1},
    })

    # =========================================================================
    # Derived lookups
    # =========================================================================

    def rows_for(self, period: int) -> int:
        return self.row_budget[period]

    def market_spec(self, name: str) -> Optional[MarketSpec]:
        for spec in self.markets:
            if spec.name == name:
                return spec
        return None

    def chip_limit(self, chip: str, period: int) -> int:
        if chip == "education" and period == self.first_period:
            return self.period2_education_limit
        return self.chip_limits.get(chip, 0)

    def loan_limit(self, period: int, equity: int) -> int:
        """Long-term borrowing ceiling for a company at the given period."""
        if period <= self.first_period:
            return 0
        multiplier = self.loan_multiplier_low
        if period >= self.loan_high_min_period and equity > self.loan_high_equity:
            multiplier = self.loan_multiplier_high
        return max(0, int(equity * multiplier))

    def depreciation_for(self, machine_type: str, attachments: int, period: int) -> int:
        key = machine_type
        if machine_type == "small" and attachments > 0:
            key = "small_attached"
        return self.depreciation[key][period]

    def canonical_decision_deck(self) -> List[str]:
        return ["decision"] * self.decision_tokens + ["risk"] * self.risk_tokens

    def canonical_risk_deck(self) -> List[int]:
        return sorted(self.risk_cards)


def default_rules() -> RuleConfig:
    """Return the standard rule table."""
    return RuleConfig()


# =============================================================================
# JSON OVERRIDES
# =============================================================================

def _coerce_int_keys(value: Any) -> Any:
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            key = int(k) if isinstance(k, str) and k.lstrip("-").isdigit() else k
            out[key] = _coerce_int_keys(v)
        return out
    return value


def load_rules(path: str, base: RuleConfig = None) -> RuleConfig:
    """
    Load rule overrides from a JSON file.

    The file holds a single object whose keys are RuleConfig field names.
    Period/dice keyed tables may use string keys ("2", "3", ...).

    Args:
        path: JSON file path
        base: Rules to override (defaults to the standard table)

    Returns:
        New RuleConfig with the overrides applied
    """
    base = base or default_rules()
    if not os.path.exists(path):
        raise RuleConfigError(f"Rule file not found: {path}")

    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise RuleConfigError(f"Invalid rule file {path}: {e}") from e

    if not isinstance(data, dict):
        raise RuleConfigError("Rule file must contain a JSON object")

    known = {f.name for f in fields(RuleConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise RuleConfigError(f"Unknown rule keys: {', '.join(unknown)}")

    overrides = {}
    for key, value in data.items():
        if key == "markets":
            overrides[key] = tuple(MarketSpec(**m) for m in value)
        elif key == "closed_markets_by_dice":
            overrides[key] = {int(k): tuple(v) for k, v in value.items()}
        else:
            overrides[key] = _coerce_int_keys(value)

    return replace(base, **overrides)


# =============================================================================
# STARTUP SELF-CHECK
# =============================================================================

def verify_rules(rules: RuleConfig) -> List[str]:
    """
    Check the rule table for internal consistency.

    Returns the list of checked rule names; raises RuleConfigError listing
    every failed check.
    """
    checked = []
    failures = []

    def check(name: str, ok: bool):
        checked.append(name)
        if not ok:
            failures.append(name)

    periods = range(rules.first_period, rules.last_period + 1)
    dice_faces = range(1, 7)

    check("six companies", rules.company_count == 6)
    check("row budget for every period", all(p in rules.row_budget for p in periods))
    check("base wage for every period", all(p in rules.base_wage for p in periods))
    check("wage multiplier for every die face", all(d in rules.wage_multiplier_by_dice for d in dice_faces))
    check("closed markets for every die face", all(d in rules.closed_markets_by_dice for d in dice_faces))
    check("row reduction for every die face", all(d in rules.row_reduction_by_dice for d in dice_faces))
    check("dice price market exists", rules.market_spec(rules.dice_price_market) is not None)

    market_names = {m.name for m in rules.markets}
    check("closed markets exist", all(
        name in market_names for names in rules.closed_markets_by_dice.values() for name in names
    ))
    sell_prices = [m.sell_price for m in rules.markets]
    check("markets ordered by sell price", sell_prices == sorted(sell_prices, reverse=True))
    check("market capacity fits minimum sale", all(m.max_stock >= rules.min_sale_quantity for m in rules.markets))

    check("deck holds 60 decision tokens", rules.decision_tokens == 60)
    check("deck holds 15 risk tokens", rules.risk_tokens == 15)
    check("risk deck covers ids 1..64", sorted(rules.risk_cards) == list(range(1, 65)))

    for key in ("small", "small_attached", "large"):
        table = rules.depreciation.get(key, {})
        check(f"depreciation for {key}", all(p in table for p in periods))

    check("machine types priced", set(rules.machine_cost) == set(rules.machine_capacity))
    check("wip cap positive", rules.wip_cap > 0)
    check("tax rate is flat half", abs(rules.tax_rate - 0.5) < 1e-9)

    if failures:
        raise RuleConfigError("Rule self-check failed: " + "; ".join(failures))
    return checked
