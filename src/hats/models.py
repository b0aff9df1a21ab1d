"""Conversation data model shared by the orchestrator and its collaborators."""
from __future__ import annotations

import base64
import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


# -----------------------------
# Enums
# -----------------------------
class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Perspective(str, Enum):
    """The six thinking hats, declared in canonical reply order."""

    WHITE = "white"
    BLACK = "black"
    BLUE = "blue"
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class Directive(str, Enum):
    """Routing instruction parsed from a leading ``@word`` token."""

    NONE = "none"
    WHITE = "white"
    BLACK = "black"
    BLUE = "blue"
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    IMAGE_AGENT = "image"
    VIDEO_AGENT = "video"

    @property
    def perspective(self) -> Optional[Perspective]:
        try:
            return Perspective(self.value)
        except ValueError:
            return None


class DispatchState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_EXTERNAL = "awaiting-external"


# -----------------------------
# Content blocks
# -----------------------------
@dataclass(frozen=True)
class TextBlock:
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImageBlock:
    # Local preview reference or a data: URI from the image service.
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url}}


@dataclass(frozen=True)
class VideoBlock:
    src: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "video", "src": self.src}


ContentBlock = Union[TextBlock, ImageBlock, VideoBlock]


def make_id(prefix: str = "") -> str:
    """Return a process-unique id: prefix + epoch millis + random suffix."""
    return f"{prefix}{int(time.time() * 1000)}{secrets.token_hex(3)}"


@dataclass(frozen=True)
class ConversationEntry:
    """One message in the conversation log.

    ``content`` is always a tuple of blocks (possibly empty), never a scalar.
    ``perspective`` is ``None`` for user messages, placeholders and agent
    replies.
    """

    id: str
    role: Role
    content: Tuple[ContentBlock, ...] = ()
    perspective: Optional[Perspective] = None

    def __post_init__(self) -> None:
        # Accept any iterable of blocks but always store a tuple.
        object.__setattr__(self, "content", tuple(self.content))

    @classmethod
    def user(cls, content: Tuple[ContentBlock, ...]) -> "ConversationEntry":
        return cls(id=make_id("u_"), role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls,
        prefix: str,
        *blocks: ContentBlock,
        perspective: Optional[Perspective] = None,
    ) -> "ConversationEntry":
        return cls(
            id=make_id(prefix),
            role=Role.ASSISTANT,
            content=blocks,
            perspective=perspective,
        )

    def text(self) -> str:
        """Concatenate the text blocks of this entry."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "hat": self.perspective.value if self.perspective else None,
            "content": [b.to_dict() for b in self.content],
        }


# -----------------------------
# Agent request inputs
# -----------------------------
@dataclass(frozen=True)
class AttachedFile:
    """A user-supplied file riding along with one send.

    The caller owns ``preview_uri``; when not given, a ``data:`` URI is built
    from the bytes so the user entry can show the upload.
    """

    filename: str
    content: bytes = field(repr=False)
    content_type: str = "application/octet-stream"
    preview_uri: Optional[str] = None

    def __post_init__(self) -> None:
        if self.preview_uri is None:
            encoded = base64.b64encode(self.content).decode("ascii")
            object.__setattr__(self, "preview_uri", f"data:{self.content_type};base64,{encoded}")

    @property
    def is_image(self) -> bool:
        return self.content_type.lower().startswith("image/")


@dataclass(frozen=True)
class ImageParams:
    num_steps: int = 8
    guidance: float = 2.5


@dataclass(frozen=True)
class VideoParams:
    num_frames: int = 25
    num_inference_steps: int = 15
    fps: int = 24


# -----------------------------
# Agent outcomes
# -----------------------------
class FailureKind(str, Enum):
    TRANSPORT = "transport"  # network error or non-2xx status
    PROTOCOL = "protocol"    # 2xx but body missing fields or declaring failure


@dataclass(frozen=True)
class AgentSuccess:
    uri: str
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class AgentFailure:
    kind: FailureKind
    message: str
    ok: bool = field(default=False, init=False)


AgentResult = Union[AgentSuccess, AgentFailure]
