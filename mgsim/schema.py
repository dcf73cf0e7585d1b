"""
Action Schema.

Defines the action type identifiers, the Action record exchanged with
decision providers, and the validation/outcome value types.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional

# =============================================================================
# ACTION TYPES
# =============================================================================

ACTION_SELL = "SELL"
ACTION_BUY_MATERIALS = "BUY_MATERIALS"
ACTION_PRODUCE = "PRODUCE"
ACTION_HIRE = "HIRE"
ACTION_REASSIGN = "REASSIGN"
ACTION_BUY_CHIP = "BUY_CHIP"
ACTION_BUY_MACHINE = "BUY_MACHINE"
ACTION_SELL_MACHINE = "SELL_MACHINE"
ACTION_BUY_ATTACHMENT = "BUY_ATTACHMENT"
ACTION_BUY_WAREHOUSE = "BUY_WAREHOUSE"
ACTION_BUY_COMPUTER = "BUY_COMPUTER"
ACTION_BUY_INSURANCE = "BUY_INSURANCE"
ACTION_BORROW_LONG_TERM = "BORROW_LONG_TERM"
ACTION_DO_NOTHING = "DO_NOTHING"

# Allowed only in the period-start phase
PERIOD_START_ACTIONS = (
    ACTION_BUY_COMPUTER,
    ACTION_BUY_INSURANCE,
    ACTION_BORROW_LONG_TERM,
)

MID_PERIOD_ACTIONS = (
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
    ACTION_DO_NOTHING,
)

ALL_ACTIONS = MID_PERIOD_ACTIONS + PERIOD_START_ACTIONS

MAX_PERIOD_START_ACTIONS = 3

# REASSIGN directions
REASSIGN_TO_SALESMEN = "to_salesmen"
REASSIGN_TO_WORKERS = "to_workers"
REASSIGN_DIRECTIONS = (REASSIGN_TO_SALESMEN, REASSIGN_TO_WORKERS)


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class Action:
    """Action proposed by a decision provider."""
    action_type: str = ACTION_DO_NOTHING
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {"action_type": self.action_type, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, d: Any) -> Optional["Action"]:
        """
        Build an Action from provider output.

        Malformed input yields None, which the driver treats as DO_NOTHING.
        """
        if isinstance(d, Action):
            return d
        if not isinstance(d, dict):
            return None
        action_type = d.get("action_type", d.get("type"))
        if not isinstance(action_type, str):
            return None
        params = d.get("params", {})
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return None
        return cls(action_type=action_type.upper(), params=dict(params))


@dataclass
class ValidationResult:
    """Validator verdict; rejections are values, never exceptions."""
    valid: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.valid


@dataclass
class ActionOutcome:
    """Result of attempting to execute an action."""
    accepted: bool
    reason: str = ""
    amount: int = 0
    queued: bool = False

    def to_dict(self) -> Dict:
        return {
            "accepted": self.accepted,
            "reason": self.reason,
            "amount": self.amount,
            "queued": self.queued,
        }


def ok() -> ValidationResult:
    return ValidationResult(True)


def reject(reason: str) -> ValidationResult:
    return ValidationResult(False, reason)
