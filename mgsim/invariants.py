"""
Post-Mutation Consistency Checks.

Every execution routine calls check_company/check_markets after mutating
state. A failure means the validator let something illegal through, so it
is raised and never caught by the engine.
"""

from typing import Any, Dict

from mgsim.capacity import storage_capacity
from mgsim.state import Company, GameState


class InvariantViolation(RuntimeError):
    """Fatal consistency failure; aborts the current game."""

    def __init__(self, rule: str, context: Dict[str, Any] = None):
        self.rule = rule
        self.context = context or {}
        super().__init__(f"{rule}: {self.context}")


def check_company(company: Company, state: GameState, cash_settled: bool = True):
    """
    Verify a company's stock, chip and cash bounds.

    Args:
        company: Company to check
        state: Owning game state
        cash_settled: Whether negative-cash cover has already run
    """
    rules = state.rules
    context = {"company_id": company.company_id, "period": state.period, "row": company.row}

    for stock in ("materials", "wip", "products", "workers", "salesmen", "warehouses"):
        value = getattr(company, stock)
        if value < 0:
            raise InvariantViolation(f"{stock} below zero", dict(context, value=value))

    if company.wip > rules.wip_cap:
        raise InvariantViolation("wip above cap", dict(context, wip=company.wip))

    capacity = storage_capacity(company, rules)
    if company.materials + company.products > capacity:
        raise InvariantViolation(
            "stock exceeds storage",
            dict(context, materials=company.materials, products=company.products, capacity=capacity),
        )

    for holding in (company.chips, company.next_chips, company.carried_over):
        for chip, count in holding.items():
            if count < 0:
                raise InvariantViolation("chip count below zero", dict(context, chip=chip, count=count))

    if company.long_term_loan < 0 or company.short_term_loan < 0:
        raise InvariantViolation("loan balance below zero", context)

    if cash_settled and company.cash < 0:
        raise InvariantViolation("negative cash after cover", dict(context, cash=company.cash))


def check_markets(state: GameState):
    for market in state.markets:
        if market.current_stock > market.max_stock or market.current_stock < 0:
            raise InvariantViolation(
                "market fill out of bounds",
                {"market": market.name, "current_stock": market.current_stock, "max_stock": market.max_stock},
            )


def check_state(state: GameState):
    for company in state.companies:
        check_company(company, state)
    check_markets(state)
