"""
Simulation Driver.

Runs a complete game: dice, period-start phase, rounds of turns with
end-of-round auctions, and settlement, for every period. The only
suspension point is the call into a decision provider.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Any, Callable, Optional, Union

from mgsim.actions import consume_row, execute_action
from mgsim.bidding import Bid, make_bid, resolve_auctions
from mgsim.invariants import InvariantViolation, check_state
from mgsim.mechanics import DiceRoller
from mgsim.risk import draw_risk
from mgsim.rules import RuleConfig, default_rules, verify_rules
from mgsim.scheduler import open_period, period_over, roll_dice, transition, turn_order
from mgsim.schema import Action, ACTION_DO_NOTHING, ACTION_SELL, MAX_PERIOD_START_ACTIONS, PERIOD_START_ACTIONS
from mgsim.settlement import SettlementBreakdown, settle_period
from mgsim.state import (
    GameState,
    DEFAULT_COMPANY_NAMES,
    LOG_PERIOD_START,
    LOG_REJECTION,
    LOG_SKIP,
    PHASE_GAME_END,
    PHASE_MID_PERIOD,
    PHASE_PERIOD_START,
    new_game,
)

Provider = Callable[[int, GameState], Optional[Union[Action, Dict]]]

# Rounds per period before the run is declared stuck
MAX_ROUNDS_PER_PERIOD = 1000


@dataclass
class SimulationOptions:
    """Run configuration."""
    all_ai: bool = True
    player_name: str = "Player"
    forced_dice: Dict[int, int] = field(default_factory=dict)
    skip_rule_check: bool = False
    seed: Optional[int] = None
    rules: Optional[RuleConfig] = None
    providers: Dict[int, Provider] = field(default_factory=dict)
    human_provider: Optional[Provider] = None
    provider_factory: Optional[Callable[[int], Provider]] = None
    risk_enabled: bool = True
    first_period: Optional[int] = None
    last_period: Optional[int] = None
    initial_company: Optional[Dict[str, Any]] = None
    verbose: bool = False
    logger: Any = None


@dataclass
class PeriodResult:
    period: int
    dice_roll: Optional[int]
    settlements: List[SettlementBreakdown] = field(default_factory=list)
    # Units sold into each market before settlement reset the fills
    market_fills: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "period": self.period,
            "dice_roll": self.dice_roll,
            "settlements": [s.to_dict() for s in self.settlements],
            "market_fills": dict(self.market_fills),
        }


@dataclass
class Winner:
    company_id: int
    name: str
    equity: int
    qualified: bool
    warning: str = ""

    def to_dict(self) -> Dict:
        return {
            "company_id": self.company_id,
            "name": self.name,
            "equity": self.equity,
            "qualified": self.qualified,
            "warning": self.warning,
        }


@dataclass
class SimulationResult:
    periods: List[PeriodResult] = field(default_factory=list)
    ranking: List[Dict[str, Any]] = field(default_factory=list)
    action_logs: Dict[int, List[Dict]] = field(default_factory=dict)
    winner: Optional[Winner] = None
    seed: Optional[int] = None
    reshuffles: Dict[str, int] = field(default_factory=dict)
    final_state: Optional[GameState] = None

    def to_dict(self) -> Dict:
        return {
            "periods": [p.to_dict() for p in self.periods],
            "ranking": list(self.ranking),
            "action_logs": {k: list(v) for k, v in self.action_logs.items()},
            "winner": self.winner.to_dict() if self.winner else None,
            "seed": self.seed,
            "reshuffles": dict(self.reshuffles),
        }


# =============================================================================
# SETUP
# =============================================================================

def build_rules(options: SimulationOptions) -> RuleConfig:
    rules = options.rules or default_rules()
    overrides = {}
    if options.first_period is not None:
        overrides["first_period"] = options.first_period
    if options.last_period is not None:
        overrides["last_period"] = options.last_period
    if overrides:
        rules = replace(rules, **overrides)
    return rules


def build_providers(options: SimulationOptions, company_count: int) -> Dict[int, Provider]:
    """
    Resolve one provider per seat; seat 0 is the human seat when not all-AI.

    Seats without an explicit provider are filled from provider_factory.
    """
    providers = {}
    for seat in range(company_count):
        if seat in options.providers:
            providers[seat] = options.providers[seat]
        elif not options.all_ai and seat == 0:
            if options.human_provider is None:
                raise ValueError("human seat requires a human_provider")
            providers[seat] = options.human_provider
        elif options.provider_factory is not None:
            providers[seat] = options.provider_factory(seat)
        else:
            raise ValueError(f"no provider for seat {seat}")
    return providers


def seat_names(options: SimulationOptions, company_count: int) -> List[str]:
    names = list(DEFAULT_COMPANY_NAMES[:company_count])
    if not options.all_ai:
        names[0] = options.player_name
    return names


# =============================================================================
# TURNS
# =============================================================================

def ask_provider(provider: Provider, company_id: int, state: GameState) -> Optional[Action]:
    """Call a provider and normalize its answer; malformed output means no action."""
    return Action.from_dict(provider(company_id, state))


def run_period_start(state: GameState, providers: Dict[int, Provider]):
    """Each company, in turn order, may take up to three period-start actions."""
    for company_id in turn_order(state):
        company = state.companies[company_id]
        company.add_log(
            state.period, LOG_PERIOD_START, "PERIOD_START",
            f"dice={state.dice_roll} rows={state.row_budget}",
        )
        for _ in range(MAX_PERIOD_START_ACTIONS):
            action = ask_provider(providers[company_id], company_id, state)
            if action is None or action.action_type == ACTION_DO_NOTHING:
                break
            if action.action_type not in PERIOD_START_ACTIONS:
                company.add_log(state.period, LOG_REJECTION, action.action_type, "not a period-start action")
                break
            outcome = execute_action(action, company_id, state)
            if not outcome.accepted:
                break


def take_turn(company_id: int, state: GameState, provider: Provider, options: SimulationOptions, bids: List[Bid]):
    """
    One company's turn within a round.

    Skip turns and risk draws consume the row. A decision is executed, or
    queued as a bid at a bidding market, in which case the auction decides
    whether the row is consumed.
    """
    company = state.companies[company_id]

    if company.skip_turns > 0:
        company.skip_turns -= 1
        company.add_log(state.period, LOG_SKIP, "SKIP", "turn skipped")
        consume_row(company)
        return

    token = state.decision_deck.draw() if options.risk_enabled else "decision"
    if token == "risk":
        outcome = draw_risk(company_id, state)
        if options.verbose:
            print(f"  {company.name}: risk {outcome.card_id} {outcome.category} ({outcome.detail})")
        consume_row(company)
        return

    action = ask_provider(provider, company_id, state)
    outcome = execute_action(action, company_id, state)
    if options.verbose:
        label = action.action_type if action else ACTION_DO_NOTHING
        print(f"  {company.name}: {label} -> {outcome.reason}")

    if outcome.queued and action.action_type == ACTION_SELL:
        market = state.market(action.params["market"])
        price = int(action.params.get("price", market.sell_price))
        bids.append(make_bid(company_id, market.name, price, int(action.params["quantity"]), state))
        return

    consume_row(company)


def play_rounds(state: GameState, providers: Dict[int, Provider], options: SimulationOptions):
    """Run rounds until every company has used its row budget."""
    rounds = 0
    while not period_over(state):
        rounds += 1
        if rounds > MAX_ROUNDS_PER_PERIOD:
            raise InvariantViolation("period did not terminate", {"period": state.period, "rounds": rounds})

        bids: List[Bid] = []
        for company_id in turn_order(state):
            if state.companies[company_id].row >= state.row_budget:
                continue
            take_turn(company_id, state, providers[company_id], options, bids)

        resolve_auctions(state, bids)
        state.turn += 1
        state.first_round = False


def play_period(state: GameState, providers: Dict[int, Provider], options: SimulationOptions) -> PeriodResult:
    rules = state.rules
    period = state.period

    if period > rules.first_period:
        roll_dice(state, options.forced_dice.get(period))
    transition(state, PHASE_PERIOD_START)
    open_period(state)

    if options.verbose:
        print(f"\n=== Period {period} (dice={state.dice_roll}, rows={state.row_budget}, "
              f"parent={state.companies[state.parent_index].name}) ===")

    run_period_start(state, providers)
    transition(state, PHASE_MID_PERIOD)
    play_rounds(state, providers, options)

    dice = state.dice_roll
    fills = {m.name: m.current_stock for m in state.markets}
    settlements = settle_period(state)
    check_state(state)

    if options.verbose:
        for s in settlements:
            print(f"  {state.companies[s.company_id].name}: G={s.profit} tax={s.tax} equity={s.equity_after}")
    return PeriodResult(period=period, dice_roll=dice, settlements=settlements, market_fills=fills)


# =============================================================================
# RESULT
# =============================================================================

def determine_winner(state: GameState) -> Winner:
    """
    Pick the winner after the final settlement.

    Qualifying companies meet the equity, inventory and carried-chip
    targets; the highest equity among them wins. If none qualifies the
    highest equity overall wins with a warning.
    """
    rules = state.rules

    def qualifies(c):
        return (
            c.equity >= rules.target_equity
            and c.total_inventory() >= rules.victory_min_inventory
            and c.strategic_chips() >= rules.victory_min_chips
        )

    by_equity = sorted(state.companies, key=lambda c: (-c.equity, c.company_id))
    qualified = [c for c in by_equity if qualifies(c)]
    if qualified:
        best = qualified[0]
        return Winner(best.company_id, best.name, best.equity, True)

    best = by_equity[0]
    return Winner(
        best.company_id, best.name, best.equity, False,
        warning="no company met the victory conditions; highest equity wins",
    )


def final_ranking(state: GameState) -> List[Dict[str, Any]]:
    by_equity = sorted(state.companies, key=lambda c: (-c.equity, c.company_id))
    return [
        {"rank": i + 1, "company_id": c.company_id, "name": c.name, "equity": c.equity}
        for i, c in enumerate(by_equity)
    ]


def run_simulation(options: SimulationOptions = None) -> SimulationResult:
    """
    Run one complete game.

    Args:
        options: Run configuration; every seat needs a provider, from
            providers, human_provider or provider_factory

    Returns:
        SimulationResult with per-period settlements, ranking, logs and winner
    """
    options = options or SimulationOptions()
    rules = build_rules(options)
    if not options.skip_rule_check:
        verify_rules(rules)

    roller = DiceRoller(options.seed)
    company_count = rules.company_count
    providers = build_providers(options, company_count)
    ai_flags = [options.all_ai or seat != 0 for seat in range(company_count)]
    state = new_game(
        rules=rules,
        roller=roller,
        names=seat_names(options, company_count),
        ai_flags=ai_flags,
        initial=options.initial_company,
    )

    logger = options.logger
    if logger:
        logger.start_game(seed=options.seed)

    result = SimulationResult(seed=options.seed)
    while state.phase != PHASE_GAME_END:
        result.periods.append(play_period(state, providers, options))

    result.winner = determine_winner(state)
    result.ranking = final_ranking(state)
    result.action_logs = {c.company_id: [e.to_dict() for e in c.log] for c in state.companies}
    result.reshuffles = {
        "decision": state.decision_deck.reshuffles,
        "risk": state.risk_deck.reshuffles,
    }
    result.final_state = state

    if logger:
        for company_id, entries in result.action_logs.items():
            for entry in entries:
                logger.log_entry(company_id, entry)
        logger.end_game({"winner": result.winner.to_dict(), "ranking": result.ranking})

    if options.verbose:
        w = result.winner
        print(f"\nWinner: {w.name} (equity {w.equity}){' - ' + w.warning if w.warning else ''}")
    return result
