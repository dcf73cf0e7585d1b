"""
Turn Scheduler.

Phase state machine, turn order, dice-driven period modifiers and the
period transition that rotates the parent.
"""

from typing import Dict, List, Set

from mgsim.capacity import inventory_value
from mgsim.invariants import InvariantViolation
from mgsim.state import (
    GameState,
    PHASE_IDLE,
    PHASE_DICE_ROLL,
    PHASE_PERIOD_START,
    PHASE_MID_PERIOD,
    PHASE_SETTLEMENT,
    PHASE_GAME_END,
)


# Legal phase transitions
TRANSITIONS: Dict[str, Set[str]] = {
    PHASE_IDLE: {PHASE_DICE_ROLL, PHASE_PERIOD_START},
    PHASE_DICE_ROLL: {PHASE_PERIOD_START},
    PHASE_PERIOD_START: {PHASE_MID_PERIOD},
    PHASE_MID_PERIOD: {PHASE_SETTLEMENT},
    PHASE_SETTLEMENT: {PHASE_IDLE, PHASE_GAME_END},
    PHASE_GAME_END: set(),
}


def transition(state: GameState, phase: str):
    """Move the period state machine; illegal moves are fatal."""
    if phase not in TRANSITIONS.get(state.phase, set()):
        raise InvariantViolation("illegal phase transition", {"from": state.phase, "to": phase})
    if state.phase == PHASE_IDLE and phase == PHASE_PERIOD_START and state.period != state.rules.first_period:
        raise InvariantViolation("dice roll skipped", {"period": state.period})
    if phase == PHASE_DICE_ROLL and state.period == state.rules.first_period:
        raise InvariantViolation("dice roll in first period", {"period": state.period})
    state.phase = phase


def turn_order(state: GameState) -> List[int]:
    """
    Company indices in acting order for the current row.

    Normal order rotates from the parent. Reversed order keeps the parent
    first and walks the remaining indices downwards.
    """
    n = len(state.companies)
    parent = state.parent_index
    if state.is_reversed:
        return [parent] + [(parent - k) % n for k in range(1, n)]
    return [(parent + k) % n for k in range(n)]


def apply_dice(state: GameState, roll: int):
    """
    Apply a period dice roll (periods >= 3 only).

    Sets closed markets, the wage multiplier, the price ceiling of the
    dice-priced market and the row-budget reduction.
    """
    rules = state.rules
    if state.period <= rules.first_period:
        raise InvariantViolation("dice applied in first period", {"period": state.period})
    if roll < 1 or roll > 6:
        raise InvariantViolation("dice roll out of range", {"roll": roll})

    state.dice_roll = roll
    state.wage_multiplier = rules.wage_multiplier_by_dice[roll]

    closed = set(rules.closed_markets_by_dice[roll])
    for market in state.markets:
        market.closed = market.name in closed
        if market.name == rules.dice_price_market:
            market.sell_price = rules.dice_price_offset + roll

    state.row_reduction = rules.row_reduction_by_dice.get(roll, 0)
    state.row_budget = rules.rows_for(state.period) - state.row_reduction


def roll_dice(state: GameState, forced: int = None) -> int:
    roll = forced if forced is not None else state.roller.d6()
    transition(state, PHASE_DICE_ROLL)
    apply_dice(state, roll)
    return roll


def open_period(state: GameState):
    """Record per-company period-opening values."""
    for company in state.companies:
        company.start_inventory = inventory_value(company, state.rules)
        company.track_personnel()
    state.first_round = state.period == state.rules.first_period


def period_over(state: GameState) -> bool:
    """A period ends once every company has used its row budget."""
    return all(c.row >= state.row_budget for c in state.companies)


def rotate_parent(state: GameState):
    state.parent_index = (state.parent_index + 1) % len(state.companies)


def finish_period(state: GameState):
    """
    Close the period on the shared state.

    Resets market fill, closures and price overrides, rotates the parent,
    clears the reversal flag and advances the period.
    """
    rules = state.rules
    for market in state.markets:
        spec = rules.market_spec(market.name)
        market.current_stock = 0
        market.closed = False
        market.sell_price = spec.sell_price

    rotate_parent(state)
    state.is_reversed = False
    state.dice_roll = None
    state.wage_multiplier = 1.0
    state.row_reduction = 0
    state.first_round = False

    if state.period >= rules.last_period:
        transition(state, PHASE_GAME_END)
        return

    state.period += 1
    state.row_budget = rules.rows_for(state.period)
    transition(state, PHASE_IDLE)
