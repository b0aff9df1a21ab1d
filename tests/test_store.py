from __future__ import annotations

from hats.models import ConversationEntry, ImageBlock, Perspective, Role, TextBlock
from hats.store import ConversationStore


def _assistant(text: str) -> ConversationEntry:
    return ConversationEntry.assistant("a_", TextBlock(text))


def test_append_preserves_order():
    store = ConversationStore()
    entries = [_assistant(str(i)) for i in range(3)]
    for e in entries:
        store.append(e)
    assert store.all() == tuple(entries)
    assert len(store) == 3


def test_replace_placeholder_removes_exactly_that_entry():
    store = ConversationStore()
    pid = store.insert_placeholder(ConversationEntry.assistant("a_placeholder_", TextBlock("Thinking...")))
    # Unrelated entries appended after the placeholder was created.
    others = [_assistant("x"), _assistant("y")]
    for e in others:
        store.append(e)

    final = _assistant("done")
    assert store.replace_placeholder(pid, final) is True
    assert store.all() == (others[0], others[1], final)
    assert store.get(pid) is None
    assert not store.is_placeholder(pid)


def test_replace_placeholder_is_idempotent():
    store = ConversationStore()
    pid = store.insert_placeholder(_assistant("Thinking..."))
    first, second = _assistant("1"), _assistant("2")
    assert store.replace_placeholder(pid, first) is True
    assert store.replace_placeholder(pid, second) is False
    assert store.all() == (first, second)


def test_all_returns_a_snapshot():
    store = ConversationStore()
    snap = store.all()
    store.append(_assistant("late"))
    assert snap == ()


def test_entry_content_is_always_a_tuple():
    entry = ConversationEntry(id="u_1", role=Role.USER, content=[TextBlock("hi")])
    assert entry.content == (TextBlock("hi"),)
    assert ConversationEntry(id="u_2", role=Role.USER).content == ()


def test_entry_to_dict_wire_shape():
    entry = ConversationEntry(
        id="a_1",
        role=Role.ASSISTANT,
        content=(TextBlock("t"), ImageBlock("data:image/png;base64,AA==")),
        perspective=Perspective.WHITE,
    )
    assert entry.to_dict() == {
        "id": "a_1",
        "role": "assistant",
        "hat": "white",
        "content": [
            {"type": "text", "text": "t"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,AA=="}},
        ],
    }


def test_export_text():
    store = ConversationStore()
    store.append(ConversationEntry.user((TextBlock("hello"), ImageBlock("blob:x"))))
    store.append(ConversationEntry.assistant("a_", TextBlock("facts"), perspective=Perspective.WHITE))
    out = store.export_text()
    assert "user: hello <image>" in out
    assert "assistant [white]: facts" in out


def test_ids_are_unique_and_prefixed():
    ids = {ConversationEntry.assistant("img_", TextBlock("x")).id for _ in range(200)}
    assert len(ids) == 200
    assert all(i.startswith("img_") for i in ids)
