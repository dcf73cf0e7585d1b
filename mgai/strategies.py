"""
Strategy Definitions.

Each strategy is a frozen dataclass carrying its own parameters. The
heuristic provider dispatches on the strategy's type and reads the
priority order and targets from it.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Tuple, Union

# Candidate kinds the heuristic provider knows how to build
KIND_SELL = "sell"
KIND_PRODUCE = "produce"
KIND_MATERIALS = "materials"
KIND_CHIP = "chip"
KIND_HIRE = "hire"
KIND_REASSIGN = "reassign"
KIND_MACHINE = "machine"
KIND_ATTACHMENT = "attachment"


@dataclass(frozen=True)
class ResearchFocused:
    """Stack research chips to win auctions at the expensive markets."""
    name: str = "research_focused"
    chip_targets: Dict[str, int] = field(default_factory=lambda: {"research": 4})
    priorities: Tuple[str, ...] = (KIND_SELL, KIND_CHIP, KIND_PRODUCE, KIND_MATERIALS, KIND_HIRE)
    price_cut: int = 1
    cash_reserve: int = 60
    materials_target: int = 4
    salesmen_target: int = 1
    buy_computer: bool = True
    buy_insurance: bool = True


@dataclass(frozen=True)
class SalesFocused:
    """Grow sales capacity with salesmen and advertising."""
    name: str = "sales_focused"
    chip_targets: Dict[str, int] = field(default_factory=lambda: {"advertising": 2})
    priorities: Tuple[str, ...] = (KIND_SELL, KIND_PRODUCE, KIND_MATERIALS, KIND_REASSIGN, KIND_HIRE, KIND_CHIP)
    price_cut: int = 3
    cash_reserve: int = 50
    materials_target: int = 5
    salesmen_target: int = 3
    buy_computer: bool = True
    buy_insurance: bool = False


@dataclass(frozen=True)
class LowChip:
    """Avoid chip spending; compete on volume at the cheap markets."""
    name: str = "low_chip"
    chip_targets: Dict[str, int] = field(default_factory=dict)
    priorities: Tuple[str, ...] = (KIND_SELL, KIND_PRODUCE, KIND_MATERIALS, KIND_HIRE)
    price_cut: int = 4
    cash_reserve: int = 40
    materials_target: int = 4
    salesmen_target: int = 1
    buy_computer: bool = False
    buy_insurance: bool = False


@dataclass(frozen=True)
class Balanced:
    """Even mix of chips, production and sales."""
    name: str = "balanced"
    chip_targets: Dict[str, int] = field(default_factory=lambda: {"research": 2, "advertising": 1})
    priorities: Tuple[str, ...] = (KIND_SELL, KIND_PRODUCE, KIND_MATERIALS, KIND_CHIP, KIND_HIRE)
    price_cut: int = 2
    cash_reserve: int = 50
    materials_target: int = 4
    salesmen_target: int = 2
    buy_computer: bool = True
    buy_insurance: bool = True


@dataclass(frozen=True)
class Aggressive:
    """Invest in machines and attachments early, borrow to fund it."""
    name: str = "aggressive"
    chip_targets: Dict[str, int] = field(default_factory=lambda: {"research": 2, "education": 1})
    priorities: Tuple[str, ...] = (
        KIND_SELL, KIND_MACHINE, KIND_ATTACHMENT, KIND_HIRE, KIND_PRODUCE, KIND_MATERIALS, KIND_CHIP
    )
    price_cut: int = 2
    cash_reserve: int = 30
    materials_target: int = 6
    salesmen_target: int = 2
    buy_computer: bool = True
    buy_insurance: bool = False
    machine_target: int = 2
    borrow_fraction: float = 1.0


@dataclass(frozen=True)
class PlayerDefault:
    """Conservative defaults used for a seat with no configured strategy."""
    name: str = "player_default"
    chip_targets: Dict[str, int] = field(default_factory=lambda: {"research": 1})
    priorities: Tuple[str, ...] = (KIND_SELL, KIND_PRODUCE, KIND_MATERIALS, KIND_CHIP)
    price_cut: int = 0
    cash_reserve: int = 60
    materials_target: int = 3
    salesmen_target: int = 1
    buy_computer: bool = True
    buy_insurance: bool = True


Strategy = Union[ResearchFocused, SalesFocused, LowChip, Balanced, Aggressive, PlayerDefault]

STRATEGIES = {
    "research_focused": ResearchFocused,
    "sales_focused": SalesFocused,
    "low_chip": LowChip,
    "balanced": Balanced,
    "aggressive": Aggressive,
    "player_default": PlayerDefault,
}

# Seat assignment when no strategies are configured
DEFAULT_LINEUP = ("balanced", "research_focused", "sales_focused", "low_chip", "aggressive", "balanced")


def strategy_from_name(name: str) -> Strategy:
    """Build a strategy with default parameters from its name."""
    if name not in STRATEGIES:
        raise ValueError(f"Unknown strategy: {name}")
    return STRATEGIES[name]()


def strategy_to_dict(strategy: Strategy) -> Dict:
    return asdict(strategy)
