"""Cloud API wire format for the four reply shapes."""
from __future__ import annotations

from typing import Any

from dinebot.fsm.replies import ButtonsReply, ImageReply, ListReply, Reply, TextReply

TEXT_BODY_LIMIT = 4096
INTERACTIVE_BODY_LIMIT = 1024
BUTTON_TITLE_LIMIT = 20
ROW_TITLE_LIMIT = 24
ROW_DESCRIPTION_LIMIT = 72
SECTION_TITLE_LIMIT = 24
ROW_ID_LIMIT = 200
CAPTION_LIMIT = 1024


def _truncate(value: str | None, limit: int) -> str:
    text = (value or "").strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def _envelope(to: str, message_type: str, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "messaging_product": "whatsapp",
        "recipient_type": "individual",
        "to": to,
        "type": message_type,
        message_type: body,
    }


def _render_buttons(reply: ButtonsReply) -> dict[str, Any]:
    return {
        "type": "button",
        "body": {"text": _truncate(reply.body, INTERACTIVE_BODY_LIMIT)},
        "action": {
            "buttons": [
                {
                    "type": "reply",
                    "reply": {"id": button.id, "title": _truncate(button.title, BUTTON_TITLE_LIMIT)},
                }
                for button in reply.buttons
            ]
        },
    }


def _render_list(reply: ListReply) -> dict[str, Any]:
    sections = []
    for section in reply.sections:
        rows = []
        for row in section.rows:
            rendered = {"id": row.id[:ROW_ID_LIMIT], "title": _truncate(row.title, ROW_TITLE_LIMIT)}
            if row.description:
                rendered["description"] = _truncate(row.description, ROW_DESCRIPTION_LIMIT)
            rows.append(rendered)
        sections.append({"title": _truncate(section.title, SECTION_TITLE_LIMIT), "rows": rows})
    return {
        "type": "list",
        "body": {"text": _truncate(reply.body, INTERACTIVE_BODY_LIMIT)},
        "action": {
            "button": _truncate(reply.button_label, BUTTON_TITLE_LIMIT),
            "sections": sections,
        },
    }


def render_reply(reply: Reply, to: str) -> dict[str, Any]:
    if isinstance(reply, TextReply):
        return _envelope(to, "text", {"preview_url": False, "body": _truncate(reply.body, TEXT_BODY_LIMIT)})
    if isinstance(reply, ButtonsReply):
        return _envelope(to, "interactive", _render_buttons(reply))
    if isinstance(reply, ListReply):
        return _envelope(to, "interactive", _render_list(reply))
    if isinstance(reply, ImageReply):
        return _envelope(
            to,
            "image",
            {"link": reply.image_url, "caption": _truncate(reply.caption, CAPTION_LIMIT)},
        )
    raise TypeError(f"Cannot render reply of type {type(reply).__name__}")
