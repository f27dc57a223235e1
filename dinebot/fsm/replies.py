"""Abstract replies produced by the state machine.

Exactly four shapes exist, one per outbound wire format. The renderer in
``dinebot.whatsapp.renderer`` must handle every one of them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

MAX_BUTTONS = 3
MAX_LIST_ROWS = 10


@dataclass(frozen=True)
class Button:
    id: str
    title: str


@dataclass(frozen=True)
class ListRow:
    id: str
    title: str
    description: str | None = None


@dataclass(frozen=True)
class ListSection:
    title: str
    rows: tuple[ListRow, ...]


@dataclass(frozen=True)
class TextReply:
    body: str


@dataclass(frozen=True)
class ButtonsReply:
    body: str
    buttons: tuple[Button, ...]

    def __post_init__(self) -> None:
        if not 1 <= len(self.buttons) <= MAX_BUTTONS:
            raise ValueError(f"ButtonsReply takes 1-{MAX_BUTTONS} buttons, got {len(self.buttons)}")


@dataclass(frozen=True)
class ListReply:
    body: str
    button_label: str
    sections: tuple[ListSection, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        total_rows = sum(len(section.rows) for section in self.sections)
        if not 1 <= total_rows <= MAX_LIST_ROWS:
            raise ValueError(f"ListReply takes 1-{MAX_LIST_ROWS} rows, got {total_rows}")

    @property
    def rows(self) -> list[ListRow]:
        return [row for section in self.sections for row in section.rows]


@dataclass(frozen=True)
class ImageReply:
    image_url: str
    caption: str


Reply = Union[TextReply, ButtonsReply, ListReply, ImageReply]


def single_section_list(body: str, button_label: str, section_title: str, rows: list[ListRow]) -> ListReply:
    return ListReply(
        body=body,
        button_label=button_label,
        sections=(ListSection(title=section_title, rows=tuple(rows)),),
    )


def reply_summary(reply: Reply) -> str:
    """Plain-text rendition stored in the transcript."""
    if isinstance(reply, TextReply):
        return reply.body
    if isinstance(reply, ButtonsReply):
        titles = " | ".join(button.title for button in reply.buttons)
        return f"{reply.body}\n[{titles}]"
    if isinstance(reply, ListReply):
        titles = " | ".join(row.title for row in reply.rows)
        return f"{reply.body}\n[{titles}]"
    if isinstance(reply, ImageReply):
        return f"{reply.caption}\n<{reply.image_url}>"
    raise TypeError(f"Unsupported reply type: {type(reply).__name__}")
