import numpy as np

from mgai.logger import GameLogger, convert_numpy, read_game_log


def test_convert_numpy_nested():
    data = {"a": np.int64(3), "b": [np.float32(1.5), np.bool_(True)], "c": np.arange(3), "d": {"x", "y"}}
    converted = convert_numpy(data)
    assert converted == {"a": 3, "b": [1.5, True], "c": [0, 1, 2], "d": ["x", "y"]}
    assert type(converted["a"]) is int


def test_disabled_logger_writes_nothing(tmp_path):
    log_dir = tmp_path / "logs"
    logger = GameLogger(log_dir=str(log_dir), enabled=False)
    logger.start_game(seed=1, game_id="x")
    logger.log_entry(0, {"category": "decision"})
    logger.end_game({"winner": 0})
    assert not log_dir.exists()


def test_records_are_numbered(tmp_path):
    logger = GameLogger(log_dir=str(tmp_path))
    logger.start_game(seed=np.int64(5), game_id="abc")
    logger.log_entry(2, {"category": "decision", "cash": np.int64(40)})
    logger.log_entry(3, {"category": "risk"})
    logger.end_game({"winner": 2})

    records = read_game_log(str(tmp_path / "game_abc.jsonl"))
    assert [r["type"] for r in records] == ["game_start", "entry", "entry", "game_end"]
    assert records[0]["seed"] == 5
    assert [r["entry_idx"] for r in records[1:3]] == [0, 1]
    assert records[1]["cash"] == 40
    assert records[-1]["total_entries"] == 2
    assert logger.current_file is None
