from __future__ import annotations

from typing import Any

from langchain_core.messages import BaseMessage


def content_to_text(content: Any) -> str:
    """Flattens langchain message content (plain string or block list) to text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content

    text_items: list[str] = []
    for block in content:
        if isinstance(block, str):
            text_items.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            text = block.get("text")
            if isinstance(text, str):
                text_items.append(text)
    return "".join(text_items)


def message_text(message: BaseMessage | None) -> str:
    if message is None:
        return ""
    return content_to_text(message.content)
