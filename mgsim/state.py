"""
Pure Python Game State Container.

This module defines the game state structure used by the simulation:
machines, companies, markets, the per-company action log, and the
GameState arena that owns all of them.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Set
import copy

from mgsim.rules import RuleConfig, STRATEGIC_CHIPS, ALL_CHIPS, default_rules
from mgsim.mechanics import DiceRoller, Deck


# Phases of the period state machine
PHASE_IDLE = "idle"
PHASE_DICE_ROLL = "dice_roll"
PHASE_PERIOD_START = "period_start"
PHASE_MID_PERIOD = "mid_period"
PHASE_SETTLEMENT = "settlement"
PHASE_GAME_END = "game_end"

# Log categories
LOG_DECISION = "decision"
LOG_REJECTION = "rejection"
LOG_BID_LOSS = "bid_loss"
LOG_RISK = "risk"
LOG_PERIOD_START = "period_start"
LOG_SETTLEMENT = "settlement"
LOG_SKIP = "skip"

DEFAULT_COMPANY_NAMES = ["Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot"]


def empty_chips(keys=ALL_CHIPS) -> Dict[str, int]:
    return {k: 0 for k in keys}


@dataclass
class Machine:
    """Production machine."""
    machine_type: str = "small"
    attachments: int = 0
    book_value: int = 100

    def to_dict(self) -> Dict:
        return {
            "machine_type": self.machine_type,
            "attachments": self.attachments,
            "book_value": self.book_value,
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "Machine":
        return cls(
            machine_type=d.get("machine_type", "small"),
            attachments=d.get("attachments", 0),
            book_value=d.get("book_value", 100),
        )


@dataclass
class LogEntry:
    """Single append-only action log record."""
    row: int
    period: int
    category: str
    action: str
    detail: str = ""
    amount: int = 0
    snapshot: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "row": self.row,
            "period": self.period,
            "category": self.category,
            "action": self.action,
            "detail": self.detail,
            "amount": self.amount,
            "snapshot": dict(self.snapshot),
        }


@dataclass
class Company:
    """One of the six competing companies."""
    company_id: int = 0
    name: str = "Company"
    is_ai: bool = True

    cash: int = 0
    equity: int = 0
    materials: int = 0
    wip: int = 0
    products: int = 0
    workers: int = 0
    salesmen: int = 0
    machines: List[Machine] = field(default_factory=list)
    warehouses: int = 0

    chips: Dict[str, int] = field(default_factory=empty_chips)
    next_chips: Dict[str, int] = field(default_factory=lambda: empty_chips(STRATEGIC_CHIPS))
    carried_over: Dict[str, int] = field(default_factory=lambda: empty_chips(STRATEGIC_CHIPS))

    long_term_loan: int = 0
    short_term_loan: int = 0

    # Turn bookkeeping
    row: int = 1
    peak_personnel: int = 0
    skip_turns: int = 0
    blocked: Set[str] = field(default_factory=set)
    blocked_row: int = 0
    last_chip_row: int = 0
    hire_row: int = 0
    hires_this_row: int = 0
    start_actions: int = 0

    # Period accumulators
    period_sales: int = 0
    period_quantity: int = 0
    period_material_cost: int = 0
    period_processing_cost: int = 0
    period_extra_fixed: int = 0
    period_interest: int = 0
    period_special_loss: int = 0
    period_special_gain: int = 0
    period_insurance_claimed: bool = False
    start_inventory: int = 0

    # Cumulative counters
    total_sales: int = 0
    total_quantity: int = 0
    total_fixed_cost: int = 0
    total_special_loss: int = 0

    chip_purchases: Dict[str, Dict[str, int]] = field(default_factory=lambda: {
        "normal": empty_chips(STRATEGIC_CHIPS),
        "expedited": empty_chips(STRATEGIC_CHIPS),
    })

    log: List[LogEntry] = field(default_factory=list)

    def total_inventory(self) -> int:
        return self.materials + self.wip + self.products

    def personnel(self) -> int:
        return self.workers + self.salesmen

    def track_personnel(self):
        """Update the peak head-count for the period."""
        self.peak_personnel = max(self.peak_personnel, self.personnel())

    def strategic_chips(self) -> int:
        return sum(self.chips.get(c, 0) for c in STRATEGIC_CHIPS)

    def snapshot(self) -> Dict[str, int]:
        return {
            "cash": self.cash,
            "materials": self.materials,
            "wip": self.wip,
            "products": self.products,
            "warehouses": self.warehouses,
        }

    def add_log(self, period: int, category: str, action: str, detail: str = "", amount: int = 0) -> LogEntry:
        entry = LogEntry(
            row=self.row,
            period=period,
            category=category,
            action=action,
            detail=detail,
            amount=amount,
            snapshot=self.snapshot(),
        )
        self.log.append(entry)
        return entry

    def reset_period_counters(self):
        """Clear per-period accumulators and chip history."""
        self.row = 1
        self.peak_personnel = self.personnel()
        self.blocked = set()
        self.blocked_row = 0
        self.last_chip_row = 0
        self.hire_row = 0
        self.hires_this_row = 0
        self.start_actions = 0
        self.period_sales = 0
        self.period_quantity = 0
        self.period_material_cost = 0
        self.period_processing_cost = 0
        self.period_extra_fixed = 0
        self.period_interest = 0
        self.period_special_loss = 0
        self.period_special_gain = 0
        self.period_insurance_claimed = False
        self.chip_purchases = {
            "normal": empty_chips(STRATEGIC_CHIPS),
            "expedited": empty_chips(STRATEGIC_CHIPS),
        }

    def to_dict(self) -> Dict:
        return {
            "company_id": self.company_id,
            "name": self.name,
            "is_ai": self.is_ai,
            "cash": self.cash,
            "equity": self.equity,
            "materials": self.materials,
            "wip": self.wip,
            "products": self.products,
            "warehouses": self.warehouses,
            "workers": self.workers,
            "salesmen": self.salesmen,
            "machines": [m.to_dict() for m in self.machines],
            "warehouses": self.warehouses,
            "chips": dict(self.chips),
            "next_chips": dict(self.next_chips),
            "carried_over": dict(self.carried_over),
            "long_term_loan": self.long_term_loan,
            "short_term_loan": self.short_term_loan,
            "row": self.row,
            "peak_personnel": self.peak_personnel,
            "skip_turns": self.skip_turns,
            "blocked": sorted(self.blocked),
            "total_sales": self.total_sales,
            "total_quantity": self.total_quantity,
            "total_fixed_cost": self.total_fixed_cost,
            "total_special_loss": self.total_special_loss,
            "chip_purchases": copy.deepcopy(self.chip_purchases),
        }


@dataclass
class Market:
    """Market record with per-period fill."""
    name: str
    buy_price: int
    sell_price: int
    max_stock: int
    current_stock: int = 0
    needs_bid: bool = True
    closed: bool = False

    def remaining(self) -> int:
        return self.max_stock - self.current_stock

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "buy_price": self.buy_price,
            "sell_price": self.sell_price,
            "max_stock": self.max_stock,
            "current_stock": self.current_stock,
            "needs_bid": self.needs_bid,
            "closed": self.closed,
        }


@dataclass
class GameState:
    """Complete game state for simulation."""
    rules: RuleConfig = field(default_factory=default_rules)
    roller: DiceRoller = field(default_factory=DiceRoller)
    period: int = 2
    turn: int = 0
    parent_index: int = 0
    companies: List[Company] = field(default_factory=list)
    markets: List[Market] = field(default_factory=list)
    decision_deck: Optional[Deck] = None
    risk_deck: Optional[Deck] = None
    dice_roll: Optional[int] = None
    wage_multiplier: float = 1.0
    row_budget: int = 20
    row_reduction: int = 0
    first_round: bool = True
    is_reversed: bool = False
    phase: str = PHASE_IDLE

    def company(self, company_id: int) -> Company:
        return self.companies[company_id]

    def market(self, name: str) -> Optional[Market]:
        for m in self.markets:
            if m.name == name:
                return m
        return None

    def is_parent(self, company_id: int) -> bool:
        return company_id == self.parent_index

    def to_dict(self) -> Dict:
        return {
            "period": self.period,
            "turn": self.turn,
            "parent_index": self.parent_index,
            "companies": [c.to_dict() for c in self.companies],
            "markets": [m.to_dict() for m in self.markets],
            "decision_deck": self.decision_deck.to_dict() if self.decision_deck else None,
            "risk_deck": self.risk_deck.to_dict() if self.risk_deck else None,
            "dice_roll": self.dice_roll,
            "wage_multiplier": self.wage_multiplier,
            "row_budget": self.row_budget,
            "first_round": self.first_round,
            "is_reversed": self.is_reversed,
            "phase": self.phase,
        }


def build_markets(rules: RuleConfig) -> List[Market]:
    return [
        Market(
            name=spec.name,
            buy_price=spec.buy_price,
            sell_price=spec.sell_price,
            max_stock=spec.max_stock,
            needs_bid=spec.needs_bid,
        )
        for spec in rules.markets
    ]


def create_company(company_id: int, name: str, is_ai: bool, initial: Dict[str, Any]) -> Company:
    """Create a company from an initial-values table."""
    chips = empty_chips()
    chips.update(initial.get("chips", {}))
    company = Company(
        company_id=company_id,
        name=name,
        is_ai=is_ai,
        cash=initial.get("cash", 0),
        equity=initial.get("equity", 0),
        materials=initial.get("materials", 0),
        wip=initial.get("wip", 0),
        products=initial.get("products", 0),
        workers=initial.get("workers", 0),
        salesmen=initial.get("salesmen", 0),
        machines=[Machine.from_dict(m) for m in initial.get("machines", [])],
        warehouses=initial.get("warehouses", 0),
        chips=chips,
    )
    company.reset_period_counters()
    return company


def new_game(
    rules: RuleConfig = None,
    roller: DiceRoller = None,
    names: List[str] = None,
    ai_flags: List[bool] = None,
    initial: Dict[str, Any] = None,
) -> GameState:
    """
    Create a fresh game positioned at the start of the first period.

    Args:
        rules: Rule table (defaults to the standard one)
        roller: Injected RNG source
        names: Six company names
        ai_flags: Six is-AI flags
        initial: Overrides for the initial company values

    Returns:
        GameState with six reset companies and two shuffled decks
    """
    rules = rules or default_rules()
    roller = roller or DiceRoller()
    names = names or DEFAULT_COMPANY_NAMES
    ai_flags = ai_flags or [True] * rules.company_count

    start_values = copy.deepcopy(rules.initial_company)
    if initial:
        start_values.update(copy.deepcopy(initial))

    state = GameState(rules=rules, roller=roller)
    state.period = rules.first_period
    state.row_budget = rules.rows_for(state.period)
    state.markets = build_markets(rules)
    state.companies = [
        create_company(i, names[i], ai_flags[i], start_values)
        for i in range(rules.company_count)
    ]
    state.decision_deck = Deck("decision", rules.canonical_decision_deck(), roller)
    state.risk_deck = Deck("risk", rules.canonical_risk_deck(), roller)
    return state
