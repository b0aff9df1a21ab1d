from __future__ import annotations

import pytest

from hats.models import Directive
from hats.tags import parse_directive


@pytest.mark.parametrize(
    "raw",
    ["", "Let's brainstorm", "  leading space", "email me @ home", "a@white b", "@", "@ white"],
)
def test_untagged_input_is_returned_unchanged(raw):
    directive, text = parse_directive(raw)
    assert directive is Directive.NONE
    assert text == raw


def test_tag_is_case_insensitive_and_stripped():
    assert parse_directive("@White hello") == (Directive.WHITE, "hello")
    assert parse_directive("@BLACK   What should we avoid?") == (Directive.BLACK, "What should we avoid?")


def test_agent_tags():
    assert parse_directive("@image a castle") == (Directive.IMAGE_AGENT, "a castle")
    assert parse_directive("@Video a castle") == (Directive.VIDEO_AGENT, "a castle")


def test_bare_tag_leaves_empty_text():
    assert parse_directive("@green") == (Directive.GREEN, "")
    assert parse_directive("@red   ") == (Directive.RED, "")


def test_unrecognized_tag_is_kept_as_literal_text():
    """Unknown @words are ordinary text: nothing is stripped."""
    assert parse_directive("@foo bar") == (Directive.NONE, "@foo bar")
    # A known name glued to more word characters is a different word.
    assert parse_directive("@whiteboard ideas") == (Directive.NONE, "@whiteboard ideas")


def test_directive_perspective_mapping():
    assert Directive.BLUE.perspective is not None
    assert Directive.BLUE.perspective.value == "blue"
    assert Directive.IMAGE_AGENT.perspective is None
    assert Directive.NONE.perspective is None
