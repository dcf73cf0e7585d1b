"""
Capability Calculators.

Pure functions deriving manufacturing, sales, storage and price
competitiveness from a company's holdings.
"""

from typing import List

from mgsim.rules import RuleConfig
from mgsim.state import Company, GameState, Machine


def machine_capacity(machine: Machine, rules: RuleConfig) -> int:
    """Units per row a single operated machine can complete."""
    base = rules.machine_capacity.get(machine.machine_type, 0)
    if machine.machine_type == "small":
        base += machine.attachments * rules.attachment_bonus
    return base


def operating_machines(company: Company, rules: RuleConfig) -> List[int]:
    """Capacities of the machines that have a worker, best first."""
    capacities = sorted((machine_capacity(m, rules) for m in company.machines), reverse=True)
    return capacities[:min(len(company.machines), company.workers)]


def manufacturing_capacity(company: Company, rules: RuleConfig) -> int:
    """
    Units the company can complete in one row.

    Machines without an operating worker contribute nothing. A computer chip
    adds 1 per operating machine and any education chip adds a flat 1.
    """
    operating = operating_machines(company, rules)
    capacity = sum(operating)
    if company.chips.get("computer", 0) > 0:
        capacity += len(operating)
    if company.chips.get("education", 0) > 0:
        capacity += 1
    return capacity


def sales_capacity(company: Company) -> int:
    salesmen = company.salesmen
    advertising = company.chips.get("advertising", 0)
    education = company.chips.get("education", 0)
    return salesmen * 2 + min(advertising, salesmen * 2) * 2 + min(education, 1)


def storage_capacity(company: Company, rules: RuleConfig) -> int:
    return rules.storage_base + company.warehouses * rules.warehouse_capacity


def free_storage(company: Company, rules: RuleConfig) -> int:
    """Room left for materials and products."""
    return storage_capacity(company, rules) - company.materials - company.products


def price_competitiveness(company: Company, state: GameState) -> int:
    rules = state.rules
    bonus = company.chips.get("research", 0) * rules.research_bonus
    if state.is_parent(company.company_id):
        bonus += rules.parent_bonus
    return bonus


def inventory_value(company: Company, rules: RuleConfig) -> int:
    """Book value of stock for the VQ calculation."""
    return (
        company.materials * rules.material_value
        + company.wip * rules.wip_value
        + company.products * rules.product_value
    )


def sellable_quantity(company: Company, state: GameState) -> int:
    """Products that may leave stock without breaking the final-period reserve."""
    limit = company.products
    if state.period == state.rules.last_period:
        reserve_room = company.total_inventory() - state.rules.final_period_inventory_reserve
        limit = min(limit, max(0, reserve_room))
    return limit
