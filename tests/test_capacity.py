from mgsim.capacity import (
    free_storage,
    inventory_value,
    manufacturing_capacity,
    price_competitiveness,
    sales_capacity,
    sellable_quantity,
    storage_capacity,
)
from mgsim.state import Machine

from conftest import make_state


def test_initial_company_capacity(state, rules):
    company = state.companies[0]
    # one small machine with a worker, plus the computer bonus
    assert manufacturing_capacity(company, rules) == 2
    assert sales_capacity(company) == 2
    assert storage_capacity(company, rules) == 20
    assert free_storage(company, rules) == 18


def test_manufacturing_uses_best_machines_per_worker(state, rules):
    company = state.companies[0]
    company.chips["computer"] = 0
    company.machines = [Machine("small", 1, 100), Machine("large", 0, 200), Machine("small", 0, 100)]
    company.workers = 1
    assert manufacturing_capacity(company, rules) == 4
    company.workers = 2
    assert manufacturing_capacity(company, rules) == 6
    company.workers = 5
    assert manufacturing_capacity(company, rules) == 7


def test_manufacturing_computer_and_education_bonus(state, rules):
    company = state.companies[0]
    company.machines = [Machine("small", 0, 100), Machine("small", 0, 100)]
    company.workers = 2
    company.chips["computer"] = 1
    assert manufacturing_capacity(company, rules) == 4
    company.chips["education"] = 2
    assert manufacturing_capacity(company, rules) == 5


def test_manufacturing_without_workers(state, rules):
    company = state.companies[0]
    company.workers = 0
    company.chips["education"] = 0
    assert manufacturing_capacity(company, rules) == 0


def test_sales_capacity_formula(state):
    company = state.companies[0]
    company.salesmen = 1
    company.chips["advertising"] = 3
    company.chips["education"] = 2
    assert sales_capacity(company) == 1 * 2 + min(3, 2) * 2 + 1


def test_storage_grows_with_warehouses(state, rules):
    company = state.companies[0]
    company.warehouses = 2
    assert storage_capacity(company, rules) == 44


def test_price_competitiveness(state):
    parent = state.companies[state.parent_index]
    other = state.companies[(state.parent_index + 1) % 6]
    parent.chips["research"] = 2
    other.chips["research"] = 2
    assert price_competitiveness(parent, state) == 6
    assert price_competitiveness(other, state) == 4


def test_inventory_value(state, rules):
    company = state.companies[0]
    assert inventory_value(company, rules) == 1 * 13 + 2 * 14 + 1 * 15


def test_sellable_quantity_respects_final_reserve():
    state = make_state(period=5)
    company = state.companies[0]
    company.materials, company.wip, company.products = 4, 4, 5
    assert sellable_quantity(company, state) == 3
    company.products = 1
    assert sellable_quantity(company, state) == 0
