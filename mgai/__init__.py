# Decision providers for the MG simulation engine
# This module provides:
# - strategies.py: strategy tagged union for heuristic providers
# - policy_heuristic.py: reference heuristic decision provider
# - logger.py: JSONL game-log writer

__version__ = "0.1.0"
