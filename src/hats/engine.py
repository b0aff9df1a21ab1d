"""Dispatch engine routing one user utterance to hats or external agents.

State machine::

    idle -> dispatching -> idle
                        -> awaiting-external -> idle

Only one send is in flight at a time; a send arriving while busy is
rejected without touching the store. The only suspension points are the
external agent call and the pacing delay between hat replies.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .agents import ExternalAgentClient
from .models import (
    AgentFailure,
    AgentResult,
    AttachedFile,
    ContentBlock,
    ConversationEntry,
    Directive,
    DispatchState,
    FailureKind,
    ImageBlock,
    Perspective,
    TextBlock,
    VideoBlock,
)
from .perspectives import canonical_order, perspective_reply
from .settings import Settings
from .store import ConversationStore
from .tags import parse_directive

logger = logging.getLogger(__name__)

PACING_DELAY = 0.35  # seconds between hat replies
THINKING_TEXT = "Thinking..."
IMAGE_PENDING_TEXT = "🎨 Generating image..."
VIDEO_PENDING_TEXT = "🎬 Generating video..."
IMAGE_LEAD_IN = "Here is your generated image:"
ERROR_MARKER = "❌"


@dataclass(frozen=True)
class OrchestratorState:
    """Read-only view handed to render collaborators."""

    entries: Tuple[ConversationEntry, ...]
    state: DispatchState
    settings: Settings

    @property
    def pending(self) -> bool:
        return self.state is not DispatchState.IDLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "pending": self.pending,
            "state": self.state.value,
        }


Listener = Callable[[OrchestratorState], None]


class Orchestrator:
    """Owns the conversation store, the settings and the dispatch state."""

    def __init__(
        self,
        *,
        store: Optional[ConversationStore] = None,
        agents: Optional[ExternalAgentClient] = None,
        settings: Optional[Settings] = None,
        pacing_delay: float = PACING_DELAY,
    ) -> None:
        self.store = store or ConversationStore()
        self.agents = agents or ExternalAgentClient()
        self.settings = settings or Settings()
        self.pacing_delay = max(0.0, float(pacing_delay))
        self._state = DispatchState.IDLE
        self._listeners: List[Listener] = []

    @classmethod
    def from_config(
        cls,
        cfg: Dict[str, Any],
        *,
        agents: Optional[ExternalAgentClient] = None,
    ) -> "Orchestrator":
        orch_cfg = cfg.get("orchestrator", {}) or {}
        agents_cfg = cfg.get("agents", {}) or {}
        return cls(
            agents=agents or ExternalAgentClient(timeout=agents_cfg.get("timeout")),
            settings=Settings.from_config(cfg),
            pacing_delay=float(orch_cfg.get("pacing_delay", PACING_DELAY)),
        )

    # -------------------------
    # Observation
    # -------------------------
    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is not DispatchState.IDLE

    def snapshot(self) -> OrchestratorState:
        return OrchestratorState(entries=self.store.all(), state=self._state, settings=self.settings)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every store mutation and state change.

        Returns a callable that unsubscribes it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Conversation listener %r failed", listener)

    def _set_state(self, state: DispatchState) -> None:
        if state is not self._state:
            logger.debug("dispatch state %s -> %s", self._state.value, state.value)
            self._state = state
            self._notify()

    def update_settings(self, **changes: Any) -> Settings:
        """Validate and apply settings changes; raises ValueError on bad input."""
        self.settings = self.settings.updated(**changes)
        self._notify()
        return self.settings

    # -------------------------
    # Store writes (notify after each)
    # -------------------------
    def _append(self, entry: ConversationEntry) -> None:
        self.store.append(entry)
        self._notify()

    def _insert_placeholder(self, prefix: str, text: str) -> str:
        pid = self.store.insert_placeholder(ConversationEntry.assistant(prefix, TextBlock(text)))
        self._notify()
        return pid

    def _replace_placeholder(self, placeholder_id: str, entry: ConversationEntry) -> None:
        self.store.replace_placeholder(placeholder_id, entry)
        self._notify()

    # -------------------------
    # Dispatch
    # -------------------------
    async def send(self, text: str, attachment: Optional[AttachedFile] = None) -> bool:
        """Dispatch one user message; return False when the send is rejected.

        Rejected sends (busy, or empty text with no attachment) leave the
        store untouched.
        """
        if self._state is not DispatchState.IDLE:
            logger.info("send rejected: dispatch already in flight (%s)", self._state.value)
            return False
        raw = (text or "").strip()
        if not raw and attachment is None:
            logger.debug("send rejected: empty message without attachment")
            return False

        # Claimed before the first await, so a concurrent send sees us busy.
        self._set_state(DispatchState.DISPATCHING)
        try:
            directive, cleaned = parse_directive(raw)
            self._append_user(cleaned, attachment)
            logger.info("dispatching directive=%s", directive.value)

            if directive is Directive.IMAGE_AGENT:
                await self._run_image_agent(cleaned, attachment)
            elif directive is Directive.VIDEO_AGENT:
                await self._run_video_agent(cleaned, attachment)
            elif directive.perspective is not None:
                self._run_single(directive.perspective, cleaned)
            else:
                await self._run_all(cleaned)
        finally:
            self._set_state(DispatchState.IDLE)
        return True

    def _append_user(self, cleaned: str, attachment: Optional[AttachedFile]) -> None:
        blocks: List[ContentBlock] = []
        if cleaned:
            blocks.append(TextBlock(cleaned))
        if attachment is not None and attachment.preview_uri:
            blocks.append(ImageBlock(attachment.preview_uri))
        self._append(ConversationEntry.user(tuple(blocks)))

    def _run_single(self, perspective: Perspective, cleaned: str) -> None:
        reply = perspective_reply(perspective, cleaned)
        self._append(ConversationEntry.assistant("a_", TextBlock(reply), perspective=perspective))

    async def _run_all(self, cleaned: str) -> None:
        placeholder_id = self._insert_placeholder("a_placeholder_", THINKING_TEXT)
        for perspective in canonical_order():
            if self.pacing_delay:
                await asyncio.sleep(self.pacing_delay)
            reply = perspective_reply(perspective, cleaned)
            entry = ConversationEntry.assistant("a_", TextBlock(reply), perspective=perspective)
            # Only the first call removes the placeholder; the rest just append.
            self._replace_placeholder(placeholder_id, entry)

    async def _run_image_agent(self, prompt: str, attachment: Optional[AttachedFile]) -> None:
        placeholder_id = self._insert_placeholder("img_gen_", IMAGE_PENDING_TEXT)
        settings = self.settings
        self._set_state(DispatchState.AWAITING_EXTERNAL)
        result = await self._call_agent(
            self.agents.request_image,
            settings.image_api_base,
            prompt,
            settings.image_params(),
            attachment,
        )
        if isinstance(result, AgentFailure):
            final = ConversationEntry.assistant(
                "img_err_", TextBlock(f"{ERROR_MARKER} Image generation failed: {result.message}")
            )
        else:
            final = ConversationEntry.assistant(
                "img_", TextBlock(IMAGE_LEAD_IN), ImageBlock(result.uri)
            )
        self._replace_placeholder(placeholder_id, final)

    async def _run_video_agent(self, prompt: str, attachment: Optional[AttachedFile]) -> None:
        placeholder_id = self._insert_placeholder("vid_gen_", VIDEO_PENDING_TEXT)
        settings = self.settings
        self._set_state(DispatchState.AWAITING_EXTERNAL)
        result = await self._call_agent(
            self.agents.request_video,
            settings.video_api_base,
            prompt,
            settings.video_params(),
            attachment,
        )
        if isinstance(result, AgentFailure):
            final = ConversationEntry.assistant("vid_err_", TextBlock(_video_error_text(result)))
        else:
            final = ConversationEntry.assistant("vid_", VideoBlock(result.uri))
        self._replace_placeholder(placeholder_id, final)

    async def _call_agent(self, call: Callable[..., Any], *args: Any) -> AgentResult:
        try:
            result: AgentResult = await call(*args)
        except Exception as e:
            logger.exception("agent call raised: %s", e)
            return AgentFailure(FailureKind.TRANSPORT, str(e) or e.__class__.__name__)
        if isinstance(result, AgentFailure):
            logger.warning("agent call failed (%s): %s", result.kind.value, result.message)
        return result

    async def aclose(self) -> None:
        await self.agents.aclose()


def _video_error_text(failure: AgentFailure) -> str:
    # A declared failure from the service is shown as-is; transport errors
    # get the "Video generation error" prefix.
    if failure.kind is FailureKind.PROTOCOL:
        return f"{ERROR_MARKER} {failure.message}"
    return f"{ERROR_MARKER} Video generation error: {failure.message}"
