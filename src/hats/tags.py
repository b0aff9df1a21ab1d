"""Leading ``@word`` routing tag parser."""
from __future__ import annotations

import re
from typing import Tuple

from .models import Directive

_TAG_RE = re.compile(r"^@(\w+)\s*")

# Lowercased tag word -> directive. Anything else is plain text.
KNOWN_TAGS = {d.value: d for d in Directive if d is not Directive.NONE}


def parse_directive(text: str) -> Tuple[Directive, str]:
    """Split ``text`` into its routing directive and the remaining text.

    Only a recognized leading tag (case-insensitive) is stripped, together
    with the whitespace following it. Unrecognized tags such as ``@foo`` are
    kept as literal text and yield ``Directive.NONE``.

    Examples
    --------
    >>> parse_directive("@White hello")
    (<Directive.WHITE: 'white'>, 'hello')
    >>> parse_directive("@foo bar")
    (<Directive.NONE: 'none'>, '@foo bar')
    """
    m = _TAG_RE.match(text or "")
    if not m:
        return Directive.NONE, text
    directive = KNOWN_TAGS.get(m.group(1).lower())
    if directive is None:
        return Directive.NONE, text
    return directive, text[m.end():]
