"""System prompts and message formatting for the LLM."""

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. "
    "Answer briefly and to the point."
)

SUMMARY_SYSTEM_PROMPT = (
    "You summarize dialogues. "
    "Compress the dialogue into a short summary of 3-5 sentences. "
    "Keep the key facts, names and decisions. "
    "Return ONLY the summary."
)

SUMMARY_HEADER = "Summary of the earlier conversation:"
PREVIOUS_SUMMARY_HEADER = "Previous summary:"
NEW_MESSAGES_HEADER = "New messages to summarize:"

_ROLE_LABELS: dict[str, str] = {
    "user": "User",
    "assistant": "Assistant",
}


def build_system_prompt(base_prompt: str, summary: str = "") -> str:
    """Return *base_prompt*, framed with the running summary when there is one."""
    if not summary:
        return base_prompt
    return f"{base_prompt}\n\n{SUMMARY_HEADER}\n{summary}"


def build_messages(history) -> list[dict]:
    """Build the messages list for the LLM API call from *history* turns."""
    return [turn.to_dict() for turn in history]


def render_summary_request(summary: str, turns) -> str:
    """Render the user message asking the model to fold *turns* into *summary*."""
    parts: list[str] = []
    if summary:
        parts.append(f"{PREVIOUS_SUMMARY_HEADER}\n{summary}\n\n")
    parts.append(f"{NEW_MESSAGES_HEADER}\n")
    for turn in turns:
        label = _ROLE_LABELS.get(turn.role, turn.role.capitalize())
        parts.append(f"{label}: {turn.content}\n")
    return "".join(parts)
