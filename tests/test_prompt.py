from assistant.turn import Turn
from llm.prompt import (
    SUMMARY_HEADER,
    build_messages,
    build_system_prompt,
    render_summary_request,
)


def test_system_prompt_without_summary_is_unchanged() -> None:
    assert build_system_prompt("Be brief.") == "Be brief."
    assert build_system_prompt("Be brief.", "") == "Be brief."


def test_system_prompt_appends_summary_block() -> None:
    system = build_system_prompt("Be brief.", "User is Ann, likes tea.")

    assert system == f"Be brief.\n\n{SUMMARY_HEADER}\nUser is Ann, likes tea."


def test_build_messages_keeps_order_and_content() -> None:
    history = [Turn.user("hi"), Turn.assistant("hello"), Turn.user("again")]

    assert build_messages(history) == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "again"},
    ]


def test_summary_request_without_previous_summary() -> None:
    text = render_summary_request("", [Turn.user("My name is Ann"), Turn.assistant("Hi Ann")])

    assert text == "New messages to summarize:\nUser: My name is Ann\nAssistant: Hi Ann\n"


def test_summary_request_includes_previous_summary_first() -> None:
    text = render_summary_request("Ann likes tea.", [Turn.user("And cake")])

    assert text.startswith("Previous summary:\nAnn likes tea.\n\n")
    assert text.endswith("New messages to summarize:\nUser: And cake\n")
