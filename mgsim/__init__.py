# Simulation module for the MG management game engine
# This module provides:
# - rules.py: immutable rule configuration and startup self-check
# - capacity.py: manufacturing/sales/storage/price capability calculators
# - state.py: pure Python game state container
# - mechanics.py: injectable RNG and draw decks
# - scheduler.py: phase machine, turn order, dice modifiers
# - validator.py: single gateway for action legality
# - actions.py: action records and execution routines
# - bidding.py: auction resolver
# - risk.py: risk card effects
# - settlement.py: period-end financial close
# - driver.py: full game orchestration
# - runner.py: headless batch runner

__version__ = "0.1.0"
