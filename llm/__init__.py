"""Completion client abstraction: protocol for LLM backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CompletionClient(Protocol):
    """Any LLM backend the session talks to must implement this interface."""

    def complete(self, system: str, messages: list[dict], max_tokens: int) -> dict:
        """Generate one reply.

        Args:
            system: System prompt; may be empty.
            messages: Ordered ``{"role", "content"}`` dicts.
            max_tokens: Output budget for this request.

        Returns:
            dict with keys ``text``, ``input_tokens``, ``output_tokens``,
            ``model`` and ``elapsed_s``.

        Raises:
            llm.errors.CompletionError: one of its subclasses on any failure.
        """
        ...
