"""Role-tagged conversation turns."""

from dataclasses import dataclass

USER = "user"
ASSISTANT = "assistant"
ROLES = (USER, ASSISTANT)


@dataclass(frozen=True)
class Turn:
    role: str
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown role {self.role!r}. Supported: 'user', 'assistant'.")
        if not isinstance(self.content, str):
            raise ValueError("Turn content must be a string")

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        return cls(ASSISTANT, content)

    @classmethod
    def from_dict(cls, data: dict) -> "Turn":
        """Build a turn from its JSON form; raises ValueError on bad input."""
        if not isinstance(data, dict):
            raise ValueError("Turn must be a JSON object")
        return cls(data.get("role"), data.get("content"))

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}
