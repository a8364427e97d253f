"""Helpers for privacy-aware metrics payloads."""


def completion_metrics_payload(llm_result: dict, cost: float, include_text: bool = False) -> dict:
    """Build LLM metrics payload with optional response text."""
    payload = {
        "model": llm_result.get("model"),
        "elapsed_s": llm_result.get("elapsed_s"),
        "input_tokens": llm_result.get("input_tokens"),
        "output_tokens": llm_result.get("output_tokens"),
        "cost": cost,
        "text_chars": len(llm_result.get("text", "")),
    }
    if include_text:
        payload["text"] = llm_result.get("text", "")
    return payload


def compression_metrics_payload(
    llm_result: dict,
    cost: float,
    folded: int,
    kept: int,
    include_text: bool = False,
) -> dict:
    """Build compression metrics payload with optional summary text."""
    payload = completion_metrics_payload(llm_result, cost, include_text=include_text)
    payload["folded_turns"] = folded
    payload["kept_turns"] = kept
    return payload


def error_metrics_payload(exc: Exception) -> dict:
    """Build an error payload; remote errors carry their status."""
    payload = {"error": type(exc).__name__}
    cause = getattr(exc, "cause", None)
    if cause is not None:
        payload["cause"] = type(cause).__name__
        exc = cause
    status = getattr(exc, "status", None)
    if status is not None:
        payload["status"] = status
    return payload
