"""Six-hats message routing core.

Typical usage
-------------
from hats import Orchestrator
orch = Orchestrator()
await orch.send("@black What should we avoid?")
"""

from __future__ import annotations

from .agents import ExternalAgentClient
from .engine import Orchestrator, OrchestratorState
from .models import (
    AgentFailure,
    AgentSuccess,
    AttachedFile,
    ConversationEntry,
    Directive,
    DispatchState,
    FailureKind,
    ImageBlock,
    ImageParams,
    Perspective,
    Role,
    TextBlock,
    VideoBlock,
    VideoParams,
)
from .perspectives import perspective_reply
from .settings import Settings
from .store import ConversationStore
from .tags import parse_directive

__all__ = [
    "AgentFailure",
    "AgentSuccess",
    "AttachedFile",
    "ConversationEntry",
    "ConversationStore",
    "Directive",
    "DispatchState",
    "ExternalAgentClient",
    "FailureKind",
    "ImageBlock",
    "ImageParams",
    "Orchestrator",
    "OrchestratorState",
    "Perspective",
    "Role",
    "Settings",
    "TextBlock",
    "VideoBlock",
    "VideoParams",
    "parse_directive",
    "perspective_reply",
]

__version__ = "0.1.0"
