import json
import threading
from pathlib import Path

from assistant.metrics import MetricsLogger
from assistant.telemetry import (
    completion_metrics_payload,
    compression_metrics_payload,
    error_metrics_payload,
)
from assistant.compressor import CompressionError
from llm.errors import RemoteError

RESULT = {"text": "hello there", "model": "m", "elapsed_s": 0.3, "input_tokens": 10, "output_tokens": 2}


def test_disabled_by_default(tmp_path: Path) -> None:
    logger = MetricsLogger({"file": str(tmp_path / "metrics.jsonl")})

    logger.log("event_a", value=1)
    logger.flush()

    assert not logger.enabled
    assert not (tmp_path / "metrics.jsonl").exists()


def test_flush_interval_is_coerced_to_one(tmp_path: Path) -> None:
    log_path = tmp_path / "nested" / "metrics.jsonl"
    logger = MetricsLogger({"enabled": True, "file": str(log_path), "flush_interval": 0}, model="m")

    logger.log("event_a", value=1)

    lines = log_path.read_text().strip().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["event"] == "event_a"
    assert entry["model"] == "m"
    assert entry["value"] == 1


def test_events_buffer_until_flush(tmp_path: Path) -> None:
    log_path = tmp_path / "metrics.jsonl"
    logger = MetricsLogger({"enabled": True, "file": str(log_path), "flush_interval": 10})

    logger.log("event_a")
    logger.log("event_b")
    assert not log_path.exists()

    logger.flush()
    events = [json.loads(line)["event"] for line in log_path.read_text().splitlines()]
    assert events == ["event_a", "event_b"]


def test_write_failure_does_not_raise(monkeypatch, tmp_path: Path) -> None:
    logger = MetricsLogger({"enabled": True, "file": str(tmp_path / "metrics.jsonl"), "flush_interval": 1})

    def _broken_open(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("builtins.open", _broken_open)

    logger.log("event_a", value=1)
    logger.flush()

    assert logger.dropped_count == 1


def test_serialization_failure_drops_event_without_crashing(tmp_path: Path) -> None:
    logger = MetricsLogger({"enabled": True, "file": str(tmp_path / "metrics.jsonl"), "flush_interval": 1})

    logger.log("event_a", value=object())
    logger.flush()

    assert logger.dropped_count == 1
    path = tmp_path / "metrics.jsonl"
    if path.exists():
        assert path.read_text().strip() == ""


def test_concurrent_serialization_failures_are_all_counted(tmp_path: Path) -> None:
    logger = MetricsLogger({"enabled": True, "file": str(tmp_path / "metrics.jsonl")})

    def _log_many():
        for _ in range(200):
            logger.log("event_a", value=object())

    threads = [threading.Thread(target=_log_many) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert logger.dropped_count == 1600


def test_completion_payload_hides_text_unless_asked() -> None:
    payload = completion_metrics_payload(RESULT, cost=0.001)

    assert payload["text_chars"] == len("hello there")
    assert payload["input_tokens"] == 10
    assert payload["cost"] == 0.001
    assert "text" not in payload
    assert completion_metrics_payload(RESULT, 0.0, include_text=True)["text"] == "hello there"


def test_compression_payload_counts_turns() -> None:
    payload = compression_metrics_payload(RESULT, 0.0, folded=6, kept=2)

    assert payload["folded_turns"] == 6
    assert payload["kept_turns"] == 2


def test_error_payload_unwraps_compression_cause() -> None:
    payload = error_metrics_payload(CompressionError(RemoteError(529, "overloaded")))

    assert payload == {"error": "CompressionError", "cause": "RemoteError", "status": 529}
