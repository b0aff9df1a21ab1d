"""Async client for the external image and video generation services.

Both services take a multipart form and answer with JSON:

- ``POST {image_base}/generate`` with ``prompt``, ``num_steps``, ``guidance``
  and an optional ``file``; success is ``{"image": "<base64 png>"}``.
- ``POST {video_base}/generate_video`` with ``prompt``, ``num_frames``,
  ``num_inference_steps``, ``fps`` and an optional ``file``; success is
  ``{"status": "success", "video_base64": ..., "mime": ...}``.

No call is retried. Every failure comes back as an :class:`AgentFailure`
value instead of an exception, so the orchestrator can always settle the
in-flight placeholder.
"""
from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from .models import (
    AgentFailure,
    AgentResult,
    AgentSuccess,
    AttachedFile,
    FailureKind,
    ImageParams,
    VideoParams,
)

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------
IMAGE_PATH = "/generate"
VIDEO_PATH = "/generate_video"
FILE_FIELD = "file"
# Generation runs for minutes on slow backends; keep connect tight, read loose.
DEFAULT_TIMEOUT = httpx.Timeout(300.0, connect=10.0)
VIDEO_FALLBACK_MESSAGE = "Failed to generate video."
IMAGE_EMPTY_MESSAGE = "Image API returned empty response."


def _endpoint(base: str, path: str) -> str:
    return base.rstrip("/") + path


def _multipart(data: Dict[str, str], attachment: Optional[AttachedFile]) -> Dict[str, Tuple[Any, ...]]:
    # (None, value) parts are plain form fields, so the body is multipart
    # even when no file rides along.
    parts: Dict[str, Tuple[Any, ...]] = {k: (None, v) for k, v in data.items()}
    if attachment is not None:
        parts[FILE_FIELD] = (attachment.filename, attachment.content, attachment.content_type)
    return parts


class ExternalAgentClient:
    """Issues one request per generation call over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if client is None:
            client = httpx.AsyncClient(
                timeout=DEFAULT_TIMEOUT if timeout is None else httpx.Timeout(float(timeout)),
                transport=transport,
            )
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------
    # Public API
    # -------------------------
    async def request_image(
        self,
        base: str,
        prompt: str,
        params: ImageParams,
        attachment: Optional[AttachedFile] = None,
    ) -> AgentResult:
        data = {
            "prompt": prompt or "",
            "num_steps": str(params.num_steps),
            "guidance": str(params.guidance),
        }
        outcome = await self._post("Image", _endpoint(base, IMAGE_PATH), data, attachment)
        if isinstance(outcome, AgentFailure):
            return outcome

        image = outcome.get("image")
        if isinstance(image, str):
            # Wrapped encoders (e.g. base64.encodebytes) break lines every 76 chars.
            image = "".join(image.split())
        if not isinstance(image, str) or not image:
            return AgentFailure(FailureKind.PROTOCOL, IMAGE_EMPTY_MESSAGE)
        try:
            base64.b64decode(image, validate=True)
        except (binascii.Error, ValueError):
            return AgentFailure(FailureKind.PROTOCOL, "Image API returned an invalid base64 payload.")
        return AgentSuccess(f"data:image/png;base64,{image}")

    async def request_video(
        self,
        base: str,
        prompt: str,
        params: VideoParams,
        attachment: Optional[AttachedFile] = None,
    ) -> AgentResult:
        # A missing file is not checked here; the service decides if it needs one.
        data = {
            "prompt": prompt or "",
            "num_frames": str(params.num_frames),
            "num_inference_steps": str(params.num_inference_steps),
            "fps": str(params.fps),
        }
        outcome = await self._post("Video", _endpoint(base, VIDEO_PATH), data, attachment)
        if isinstance(outcome, AgentFailure):
            return outcome

        video = outcome.get("video_base64")
        mime = outcome.get("mime")
        if (
            outcome.get("status") == "success"
            and isinstance(video, str) and video
            and isinstance(mime, str) and mime
        ):
            return AgentSuccess(f"data:{mime};base64,{video}")
        message = outcome.get("message") or VIDEO_FALLBACK_MESSAGE
        return AgentFailure(FailureKind.PROTOCOL, str(message))

    # -------------------------
    # Internals
    # -------------------------
    async def _post(
        self,
        label: str,
        url: str,
        data: Dict[str, str],
        attachment: Optional[AttachedFile],
    ) -> Any:
        """POST the form and return the decoded JSON object, or a failure."""
        logger.debug("%s request -> %s (file=%s)", label, url, attachment is not None)
        try:
            r = await self._client.post(url, files=_multipart(data, attachment))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("%s request to %s failed: %s", label, url, e)
            return AgentFailure(FailureKind.TRANSPORT, f"{label} API request failed: {e}")

        if not r.is_success:
            logger.warning("%s API %s returned %s", label, url, r.status_code)
            return AgentFailure(
                FailureKind.TRANSPORT, f"{label} API error: {r.status_code} {r.text}"
            )

        try:
            body = r.json()
        except ValueError as e:
            logger.warning("%s API %s sent a malformed body: %s", label, url, e)
            return AgentFailure(FailureKind.TRANSPORT, f"{label} API returned malformed JSON: {e}")

        if not isinstance(body, dict):
            # Treated as an envelope with none of the expected fields.
            logger.warning("%s API %s sent a non-object body", label, url)
            return {}
        return body
