"""JSON file persistence for the conversation summary and history.

Two on-disk shapes are understood:

- the current wrapped form ``{"summary": "...", "history": [turn, ...]}``
  (``summary`` omitted when empty);
- the legacy form, a bare ``[turn, ...]`` array with no summary.

Decoding walks ``DECODERS`` in order and keeps the first success. Nothing in
this module raises on I/O problems: ``load`` falls back to an empty state and
``save``/``delete`` return a ``StoreResult`` for the caller to inspect.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from assistant.turn import Turn

log = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Reading, writing or deleting the history file failed."""


@dataclass(frozen=True)
class ConversationState:
    summary: str = ""
    history: tuple[Turn, ...] = ()


EMPTY_STATE = ConversationState()


@dataclass(frozen=True)
class DecodeAttempt:
    state: ConversationState | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.state is not None


@dataclass(frozen=True)
class StoreResult:
    error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _decode_turns(items: Any) -> tuple[Turn, ...]:
    if not isinstance(items, list):
        raise ValueError("history is not a list")
    return tuple(Turn.from_dict(item) for item in items)


def decode_wrapped(data: Any) -> DecodeAttempt:
    """Decode ``{"summary": ..., "history": [...]}``."""
    if not isinstance(data, dict):
        return DecodeAttempt(reason="not a JSON object")
    summary = data.get("summary", "")
    if summary is None:
        summary = ""
    if not isinstance(summary, str):
        return DecodeAttempt(reason="summary is not a string")
    try:
        history = _decode_turns(data.get("history", []))
    except ValueError as exc:
        return DecodeAttempt(reason=f"bad history: {exc}")
    return DecodeAttempt(state=ConversationState(summary, history))


def decode_legacy(data: Any) -> DecodeAttempt:
    """Decode a bare array of turns, as written before summaries existed."""
    try:
        history = _decode_turns(data)
    except ValueError as exc:
        return DecodeAttempt(reason=f"bad legacy history: {exc}")
    return DecodeAttempt(state=ConversationState("", history))


Decoder = Callable[[Any], DecodeAttempt]

DECODERS: tuple[Decoder, ...] = (decode_wrapped, decode_legacy)


def decode_state(raw: str | bytes, decoders: tuple[Decoder, ...] = DECODERS) -> DecodeAttempt:
    """Try each decoder in turn; the first success wins."""
    try:
        data = json.loads(raw)
    except ValueError as exc:
        return DecodeAttempt(reason=f"invalid JSON: {exc}")

    reasons: list[str] = []
    for decoder in decoders:
        attempt = decoder(data)
        if attempt.ok:
            return attempt
        reasons.append(f"{decoder.__name__}: {attempt.reason}")
    return DecodeAttempt(reason="; ".join(reasons) or "no decoders")


def encode_state(state: ConversationState) -> str:
    """Serialize *state* in the current wrapped form."""
    data: dict[str, Any] = {}
    if state.summary:
        data["summary"] = state.summary
    data["history"] = [turn.to_dict() for turn in state.history]
    return json.dumps(data, ensure_ascii=False, indent=2)


class ConversationStore:
    """Mirrors one conversation into a JSON file."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ConversationState:
        """Return the persisted state, or an empty one if none is usable."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.debug("No history file at %s", self._path)
            return EMPTY_STATE
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Could not read history file %s: %s", self._path, exc)
            return EMPTY_STATE

        attempt = decode_state(raw)
        if not attempt.ok:
            log.warning("Ignoring unreadable history file %s (%s)", self._path, attempt.reason)
            return EMPTY_STATE
        return attempt.state

    def save(self, state: ConversationState) -> StoreResult:
        """Replace the history file with *state*."""
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(encode_state(state))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            return StoreResult(PersistenceError(f"could not save {self._path}: {exc}"))
        return StoreResult()

    def delete(self) -> StoreResult:
        """Remove the history file; a missing file is not an error."""
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            return StoreResult(PersistenceError(f"could not delete {self._path}: {exc}"))
        return StoreResult()
