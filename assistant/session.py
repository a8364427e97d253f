"""Conversation session with summarizing history management.

The session owns the running summary and the active window of turns. When a
new user turn pushes the window above ``compress_at`` turns, everything but
the last ``keep_last`` turns is folded into the summary before the reply is
requested. The summary rides along in the system prompt; the window is sent
as-is.

State changes happen only after the corresponding request succeeded, so a
failed compression or reply leaves the session exactly as it was apart from
the user turn appended at the start of ``submit``.
"""

import logging
from dataclasses import dataclass

from llm import CompletionClient
from llm.prompt import DEFAULT_SYSTEM_PROMPT, build_messages, build_system_prompt
from assistant.compressor import ContextCompressor
from assistant.store import ConversationState, ConversationStore
from assistant.telemetry import (
    completion_metrics_payload,
    compression_metrics_payload,
    error_metrics_payload,
)
from assistant.turn import Turn
from assistant.usage import UsageAccountant, UsageLedger

log = logging.getLogger(__name__)


def _int_setting(config: dict, key: str, default: int, minimum: int) -> int:
    try:
        value = int(config.get(key, default))
    except (TypeError, ValueError):
        value = default
    return max(minimum, value)


@dataclass(frozen=True)
class Reply:
    text: str
    compressed: bool = False


class Session:
    """Maintains one conversation: summary, active turns and usage."""

    def __init__(
        self,
        conversation_config: dict,
        llm: CompletionClient,
        accountant: UsageAccountant,
        store: ConversationStore | None = None,
        metrics=None,
    ):
        self._system_prompt = conversation_config.get("system_prompt") or DEFAULT_SYSTEM_PROMPT
        self._keep_last = _int_setting(conversation_config, "keep_last", 4, 1)
        self._compress_at = _int_setting(conversation_config, "compress_at", 10, 1)
        self._reply_max_tokens = _int_setting(conversation_config, "reply_max_tokens", 1024, 1)
        summary_max_tokens = _int_setting(conversation_config, "summary_max_tokens", 300, 1)
        if self._keep_last >= self._compress_at:
            log.warning("keep_last=%d >= compress_at=%d; compression will never shrink history",
                        self._keep_last, self._compress_at)

        self._llm = llm
        self._accountant = accountant
        self._store = store
        self._metrics = metrics
        self._log_text = bool(conversation_config.get("log_llm_text", False))
        self._compressor = ContextCompressor(llm, self._keep_last, max_tokens=summary_max_tokens)

        self._summary = ""
        self._history: list[Turn] = []
        self._compressed = False

        if store is not None:
            state = store.load()
            self._summary = state.summary
            self._history = list(state.history)
            if self._history or self._summary:
                log.info("Loaded %d turns from %s", len(self._history), store.path)

    # ── Read-only accessors ─────────────────────────────────────

    @property
    def history(self) -> tuple[Turn, ...]:
        return tuple(self._history)

    @property
    def turn_count(self) -> int:
        return len(self._history)

    @property
    def summary(self) -> str:
        return self._summary

    @property
    def usage(self) -> UsageLedger:
        return self._accountant.ledger

    @property
    def compressed(self) -> bool:
        """Whether the most recent ``submit`` folded turns into the summary."""
        return self._compressed

    @property
    def keep_last(self) -> int:
        return self._keep_last

    @property
    def compress_at(self) -> int:
        return self._compress_at

    # ── Operations ──────────────────────────────────────────────

    def submit(self, user_text: str) -> Reply:
        """Send *user_text* and return the assistant's reply.

        Raises CompressionError if folding old turns failed, or any other
        CompletionError from the reply request. In both cases the user turn
        stays in the window and nothing is persisted.
        """
        self._history.append(Turn.user(user_text))
        self._compressed = False

        if len(self._history) > self._compress_at:
            self._compress()

        system = build_system_prompt(self._system_prompt, self._summary)
        try:
            result = self._llm.complete(system, build_messages(self._history), self._reply_max_tokens)
        except Exception as exc:
            self._log_metric("llm_error", **error_metrics_payload(exc))
            raise

        cost = self._accountant.record(result["input_tokens"], result["output_tokens"])
        self._history.append(Turn.assistant(result["text"]))
        self._log_metric("llm_complete", **completion_metrics_payload(result, cost, self._log_text))
        log.info("Reply: %d chars (in=%d, out=%d, cost=$%.6f)",
                 len(result["text"]), result["input_tokens"], result["output_tokens"], cost)

        self._persist()
        return Reply(result["text"], compressed=self._compressed)

    def reset(self) -> None:
        """Forget summary, turns and usage; remove the history file."""
        self._history = []
        self._summary = ""
        self._compressed = False
        self._accountant.reset()
        self._log_metric("session_reset")
        if self._store is None:
            return
        outcome = self._store.delete()
        if not outcome.ok:
            log.warning("History reset in memory only: %s", outcome.error)

    # ── Internals ───────────────────────────────────────────────

    def _compress(self) -> None:
        try:
            compaction = self._compressor.compress(self._summary, self._history)
        except Exception as exc:
            self._log_metric("compression_error", **error_metrics_payload(exc))
            raise
        if compaction is None:
            return

        result = compaction.result
        cost = self._accountant.record(result["input_tokens"], result["output_tokens"], compression=True)
        self._summary = compaction.summary
        self._history = list(compaction.kept)
        self._compressed = True

        self._log_metric(
            "compression_complete",
            **compression_metrics_payload(
                result, cost, compaction.folded, len(compaction.kept), self._log_text,
            ),
        )
        log.info("Folded %d turns into summary (%d chars)", compaction.folded, len(compaction.summary))

    def _persist(self) -> None:
        if self._store is None:
            return
        outcome = self._store.save(ConversationState(self._summary, tuple(self._history)))
        if not outcome.ok:
            log.warning("History not saved: %s", outcome.error)

    def _log_metric(self, event_type: str, **data) -> None:
        if self._metrics is not None:
            self._metrics.log(event_type, **data)
