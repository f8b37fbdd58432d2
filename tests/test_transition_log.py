import json
import logging

from controller.transition_log import TransitionLog, truncate


class Collector(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_transitions_not_repeated_by_root_handlers():
    root = logging.getLogger()
    collector = Collector()
    root.addHandler(collector)
    try:
        TransitionLog("voice_query").emit("Idle", reason="press.ignored")
    finally:
        root.removeHandler(collector)
    assert collector.records == []


def test_emit_returns_json_line(tmp_path):
    log = TransitionLog("hold_pause", tmp_path / "t.jsonl")
    line = log.emit("Holding", session=3, reason="hold.start")
    log.close()
    entry = json.loads(line)
    assert (entry["component"], entry["state"], entry["session"]) == ("hold_pause", "Holding", 3)
    assert (tmp_path / "t.jsonl").read_text().strip() == line


def test_truncate():
    assert truncate("  short ") == "short"
    assert truncate("x" * 200) == "x" * 117 + "..."
