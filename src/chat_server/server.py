"""FastAPI application exposing the six-hats orchestrator."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from hats import AttachedFile, Orchestrator

from .config import load_config

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic request/response
# -----------------------------
class SettingsPatch(BaseModel):
    # Ranges are enforced by Settings.updated; a ValueError maps to 422.
    image_api_base: Optional[str] = Field(default=None, min_length=1)
    video_api_base: Optional[str] = Field(default=None, min_length=1)
    image_num_steps: Optional[int] = None
    image_guidance: Optional[float] = None
    video_num_frames: Optional[int] = None
    video_num_steps: Optional[int] = None
    video_fps: Optional[int] = None


class ConversationResponse(BaseModel):
    entries: list
    pending: bool
    state: str


# -----------------------------
# Utilities
# -----------------------------
async def _read_upload(upload: Optional[UploadFile]) -> Optional[AttachedFile]:
    if upload is None or not upload.filename:
        return None
    content_type = upload.content_type or "application/octet-stream"
    if not content_type.lower().startswith("image/"):
        raise HTTPException(status_code=400, detail="Please upload an image file.")
    content = await upload.read()
    return AttachedFile(filename=upload.filename, content=content, content_type=content_type)


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    orchestrator: Optional[Orchestrator] = None,
) -> FastAPI:
    cfg = load_config(config_path)

    # CORS
    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])

    # Services
    orch = orchestrator or Orchestrator.from_config(cfg)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await orch.aclose()

    app = FastAPI(title="Six Hats Chat Server", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = orch

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "pending": orch.pending,
            "state": orch.state.value,
            "entries": len(orch.store),
        }

    @app.get("/config")
    def get_config() -> JSONResponse:
        return JSONResponse(cfg)

    @app.get("/conversation", response_model=ConversationResponse)
    def conversation() -> Dict[str, Any]:
        return orch.snapshot().to_dict()

    @app.get("/conversation/text", response_class=PlainTextResponse)
    def conversation_text() -> str:
        return orch.store.export_text()

    @app.post("/chat", response_model=ConversationResponse)
    async def chat(
        message: str = Form(default=""),
        file: Optional[UploadFile] = File(default=None),
    ) -> Dict[str, Any]:
        if orch.pending:
            raise HTTPException(status_code=409, detail="A reply is still being generated.")
        attachment = await _read_upload(file)
        if not message.strip() and attachment is None:
            raise HTTPException(status_code=400, detail="Message cannot be empty.")

        accepted = await orch.send(message, attachment)
        if not accepted:
            # Lost a race with another send between the check above and here.
            raise HTTPException(status_code=409, detail="A reply is still being generated.")
        return orch.snapshot().to_dict()

    @app.get("/settings")
    def get_settings() -> Dict[str, Any]:
        return orch.settings.to_dict()

    @app.patch("/settings")
    def patch_settings(patch: SettingsPatch) -> Dict[str, Any]:
        changes = patch.model_dump(exclude_none=True)
        try:
            settings = orch.update_settings(**changes)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        logger.info("settings updated: %s", sorted(changes))
        return settings.to_dict()

    return app
