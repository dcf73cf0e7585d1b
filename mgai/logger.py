"""
JSONL Game Logger.

Writes one JSON object per line for every action-log entry of a game,
bracketed by game start and game end records.
"""

import json
import os
from datetime import datetime
from typing import Dict, Any
import numpy as np


def convert_numpy(obj: Any) -> Any:
    """Convert numpy types to Python native types for JSON serialization."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, dict):
        return {k: convert_numpy(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy(v) for v in obj]
    elif isinstance(obj, set):
        return sorted(convert_numpy(v) for v in obj)
    return obj


class GameLogger:
    """
    Logger for simulation games in JSONL format.
    """

    def __init__(self, log_dir: str = None, enabled: bool = True):
        """
        Initialize game logger.

        Args:
            log_dir: Directory to write logs. Defaults to data/logs/
            enabled: Whether logging is active
        """
        self.enabled = enabled

        if log_dir is None:
            base_path = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
            log_dir = os.path.join(base_path, "data", "logs")

        self.log_dir = log_dir
        self.current_file = None
        self.current_game_id = None
        self.entry_idx = 0
        self.seed = None

        if self.enabled:
            os.makedirs(self.log_dir, exist_ok=True)

    def start_game(self, seed: int = None, game_id: str = None):
        """Start a new game; each game gets its own file."""
        if not self.enabled:
            return

        self.seed = seed
        self.entry_idx = 0

        if game_id is None:
            game_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        self.current_game_id = game_id
        self.current_file = os.path.join(self.log_dir, f"game_{game_id}.jsonl")

        self._write({
            "timestamp": datetime.now().isoformat(),
            "type": "game_start",
            "game_id": self.current_game_id,
            "seed": convert_numpy(seed),
        }, "game start")

    def log_entry(self, company_id: int, entry: Dict):
        """
        Log one action-log entry.

        Args:
            company_id: Company the entry belongs to
            entry: LogEntry.to_dict() output
        """
        if not self.enabled or self.current_file is None:
            return

        record = {
            "type": "entry",
            "game_id": self.current_game_id,
            "entry_idx": self.entry_idx,
            "company_id": int(company_id),
        }
        record.update(convert_numpy(entry))
        self._write(record, "log entry")
        self.entry_idx += 1

    def end_game(self, summary: Dict = None):
        """End the current game."""
        if not self.enabled:
            return

        if summary and self.current_file:
            self._write({
                "timestamp": datetime.now().isoformat(),
                "type": "game_end",
                "game_id": self.current_game_id,
                "total_entries": self.entry_idx,
                "summary": convert_numpy(summary),
            }, "game end")

        self.current_game_id = None
        self.current_file = None
        self.entry_idx = 0

    def _write(self, record: Dict, what: str):
        try:
            with open(self.current_file, "a") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            print(f"Warning: Failed to write {what}: {e}")


def read_game_log(path: str) -> list:
    """Load every record of a JSONL game log."""
    records = []
    with open(path, "r") as f:
        for line in f:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records
