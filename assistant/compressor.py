"""Folds old turns into a running summary with one LLM call."""

import logging
from dataclasses import dataclass

from llm import CompletionClient
from llm.errors import CompletionError, EmptyResponseError
from llm.prompt import SUMMARY_SYSTEM_PROMPT, render_summary_request
from assistant.turn import Turn

log = logging.getLogger(__name__)


class CompressionError(CompletionError):
    """The summarization request failed; ``cause`` holds the original error."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"compress: {cause}")


@dataclass(frozen=True)
class Compaction:
    """Outcome of one compression, applied by the session in a single step."""

    summary: str
    kept: tuple[Turn, ...]
    folded: int
    result: dict


class ContextCompressor:
    """Summarizes everything but the last ``keep_last`` turns."""

    def __init__(self, llm: CompletionClient, keep_last: int, max_tokens: int = 300,
                 system_prompt: str = SUMMARY_SYSTEM_PROMPT):
        self._llm = llm
        self._keep_last = max(1, keep_last)
        self._max_tokens = max_tokens
        self._system_prompt = system_prompt

    def compress(self, summary: str, turns) -> Compaction | None:
        """Return the new summary and surviving turns, or None if nothing to fold.

        Never mutates its inputs. Raises CompressionError if the request fails
        or the summary comes back blank.
        """
        turns = tuple(turns)
        cutoff = len(turns) - self._keep_last
        if cutoff <= 0:
            return None

        folded, kept = turns[:cutoff], turns[cutoff:]
        request = render_summary_request(summary, folded)
        log.info("Compressing %d turns (keeping %d)", len(folded), len(kept))

        try:
            result = self._llm.complete(
                self._system_prompt,
                [{"role": "user", "content": request}],
                self._max_tokens,
            )
        except CompletionError as exc:
            raise CompressionError(exc) from exc

        new_summary = result["text"].strip()
        if not new_summary:
            raise CompressionError(EmptyResponseError("summarizer returned no text"))

        return Compaction(
            summary=new_summary,
            kept=kept,
            folded=len(folded),
            result=result,
        )
