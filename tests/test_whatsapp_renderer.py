import pytest

from dinebot.fsm.replies import (
    Button,
    ButtonsReply,
    ImageReply,
    ListRow,
    TextReply,
    single_section_list,
)
from dinebot.whatsapp.renderer import render_reply


def test_text_reply_renders_text_message():
    payload = render_reply(TextReply("Hello!"), "15551234567")

    assert payload["messaging_product"] == "whatsapp"
    assert payload["to"] == "15551234567"
    assert payload["type"] == "text"
    assert payload["text"] == {"preview_url": False, "body": "Hello!"}


def test_buttons_reply_truncates_titles():
    reply = ButtonsReply(
        body="Pick one",
        buttons=(Button(id="checkout", title="A very long checkout button title"), Button(id="no", title="No")),
    )

    payload = render_reply(reply, "1555")

    interactive = payload["interactive"]
    assert payload["type"] == "interactive"
    assert interactive["type"] == "button"
    buttons = interactive["action"]["buttons"]
    assert [button["reply"]["id"] for button in buttons] == ["checkout", "no"]
    assert len(buttons[0]["reply"]["title"]) == 20


def test_list_reply_renders_sections_and_rows():
    reply = single_section_list(
        "Our menu",
        "View Categories",
        "Categories",
        [ListRow(id="1", title="Burgers", description="Grilled to order"), ListRow(id="2", title="Drinks")],
    )

    interactive = render_reply(reply, "1555")["interactive"]

    assert interactive["type"] == "list"
    assert interactive["action"]["button"] == "View Categories"
    section = interactive["action"]["sections"][0]
    assert section["title"] == "Categories"
    assert section["rows"] == [
        {"id": "1", "title": "Burgers", "description": "Grilled to order"},
        {"id": "2", "title": "Drinks"},
    ]


def test_image_reply_renders_link_and_caption():
    payload = render_reply(ImageReply(image_url="https://cdn.example.com/a.jpg", caption="Cheeseburger"), "1555")

    assert payload["type"] == "image"
    assert payload["image"] == {"link": "https://cdn.example.com/a.jpg", "caption": "Cheeseburger"}


def test_reply_shapes_enforce_size_limits():
    with pytest.raises(ValueError):
        ButtonsReply(body="too many", buttons=tuple(Button(id=str(i), title=str(i)) for i in range(4)))
    with pytest.raises(ValueError):
        single_section_list("too many", "View", "Rows", [ListRow(id=str(i), title=str(i)) for i in range(11)])


def test_unknown_reply_type_is_rejected():
    with pytest.raises(TypeError):
        render_reply("plain string", "1555")
