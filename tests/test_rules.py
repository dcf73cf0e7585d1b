import json
from dataclasses import replace

import pytest

from mgsim.rules import (
    RISK_WAREHOUSE_FIRE,
    RuleConfigError,
    default_rules,
    load_rules,
    verify_rules,
)


def test_default_rules_pass_self_check(rules):
    checked = verify_rules(rules)
    assert "risk deck covers ids 1..64" in checked
    assert "markets ordered by sell price" in checked


def test_self_check_reports_missing_period():
    rules = replace(default_rules(), row_budget={2: 20, 3: 30, 4: 34})
    with pytest.raises(RuleConfigError, match="row budget"):
        verify_rules(rules)


def test_self_check_reports_bad_deck():
    rules = replace(default_rules(), risk_tokens=14)
    with pytest.raises(RuleConfigError, match="15 risk tokens"):
        verify_rules(rules)


def test_risk_table_covers_all_cards(rules):
    assert sorted(rules.risk_cards) == list(range(1, 65))
    assert rules.risk_cards[31] == RISK_WAREHOUSE_FIRE
    assert rules.risk_cards[32] == RISK_WAREHOUSE_FIRE


def test_chip_limits(rules):
    assert rules.chip_limit("education", 2) == 2
    assert rules.chip_limit("education", 3) == 1
    assert rules.chip_limit("research", 4) == 5


def test_loan_limit(rules):
    assert rules.loan_limit(2, 283) == 0
    assert rules.loan_limit(3, 283) == 141
    assert rules.loan_limit(4, 300) == 150
    assert rules.loan_limit(4, 301) == 301
    assert rules.loan_limit(3, 400) == 200


def test_depreciation_schedule(rules):
    assert rules.depreciation_for("small", 0, 2) == 10
    assert rules.depreciation_for("small", 1, 3) == 26
    assert rules.depreciation_for("large", 0, 5) == 40


def test_load_rules_overrides(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "target_equity": 500,
        "row_reduction_by_dice": {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1, "6": 2},
    }))
    rules = load_rules(str(path))
    assert rules.target_equity == 500
    assert rules.row_reduction_by_dice[6] == 2
    assert rules.row_budget == default_rules().row_budget
    verify_rules(rules)


def test_load_rules_rejects_unknown_keys(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"no_such_rule": 1}))
    with pytest.raises(RuleConfigError, match="no_such_rule"):
        load_rules(str(path))


def test_load_rules_missing_file(tmp_path):
    with pytest.raises(RuleConfigError):
        load_rules(str(tmp_path / "missing.json"))


def test_rules_are_immutable(rules):
    with pytest.raises(Exception):
        rules.target_equity = 1
