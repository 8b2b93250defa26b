import logging
from contextlib import asynccontextmanager
from typing import Literal

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from pinpoint.bridge import ToolBridge, handle_tool_call
from pinpoint.completion import completion_status
from pinpoint.config import Settings, configure_logging, validate_config
from pinpoint.draft import Draft
from pinpoint.lifecycle import DraftManager, DraftNotFoundError, NoActiveDraftError
from pinpoint.promotion import promote_draft
from pinpoint.prompts import build_agent_context, get_system_prompt
from pinpoint.store import JsonFileDraftStore, MemoryDraftStore
from pinpoint.tools import PinpointClient

logger = logging.getLogger(__name__)


class TurnIn(BaseModel):
    role: Literal["user", "agent"]
    message: str


class FinishIn(BaseModel):
    explicit: bool = True


def _completion(draft: Draft) -> dict:
    status = completion_status(draft)
    return {"percent": status.percent, "missing": status.missing, "present": status.present}


def _draft_response(draft: Draft) -> dict:
    return {"draft": draft.to_dict(), "completion": _completion(draft)}


def create_app(manager: DraftManager, client: PinpointClient) -> FastAPI:
    """HTTP surface over one draft manager: turn ingestion plus tool webhooks."""
    bridge = ToolBridge(client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await manager.store.flush()
        await client.close()

    app = FastAPI(title="Pinpoint Voice Estimator", lifespan=lifespan)

    @app.exception_handler(NoActiveDraftError)
    async def no_active_draft(request: Request, exc: NoActiveDraftError):
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(DraftNotFoundError)
    async def draft_not_found(request: Request, exc: DraftNotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.get("/health")
    async def health():
        return PlainTextResponse("ok")

    @app.post("/session/start")
    async def start_session():
        draft = manager.resume_or_create()
        logger.info("session started on draft %s", draft.id)
        body = _draft_response(draft)
        body["system_prompt"] = get_system_prompt(draft)
        return body

    @app.post("/session/turns")
    async def add_turn(turn: TurnIn):
        update = manager.ingest_turn(turn.role, turn.message)
        draft = manager.require_active()
        return {"update": update, "completion": _completion(draft)}

    @app.post("/session/finish")
    async def finish_session(body: FinishIn | None = None):
        explicit = body.explicit if body is not None else True
        draft = manager.finish_session(explicit=explicit)
        return _draft_response(draft)

    @app.get("/session/context")
    async def session_context():
        draft = manager.require_active()
        return {"draft_id": draft.id, "context": build_agent_context(draft)}

    @app.post("/tools/{name}")
    async def call_tool(name: str, request: Request):
        raw = await request.body()
        args = await request.json() if raw else {}
        result = await handle_tool_call(manager, bridge, name, args if isinstance(args, dict) else {})
        return PlainTextResponse(result, media_type="application/json")

    @app.get("/drafts")
    async def list_drafts(incomplete: bool = False):
        drafts = manager.incomplete_drafts() if incomplete else manager.list_drafts()
        return {"drafts": [_draft_response(d) for d in drafts]}

    @app.get("/drafts/{draft_id}")
    async def get_draft(draft_id: str):
        return _draft_response(manager.resolve(draft_id))

    @app.post("/drafts/{draft_id}/activate")
    async def activate_draft(draft_id: str):
        manager.set_active(draft_id)
        return _draft_response(manager.resolve(draft_id))

    @app.post("/drafts/{draft_id}/promote")
    async def promote(draft_id: str):
        result = await promote_draft(manager, client, draft_id)
        status = 200 if manager.resolve(draft_id).estimate_id else 502
        return JSONResponse(status_code=status, content=result)

    @app.delete("/drafts/{draft_id}")
    async def delete_draft(draft_id: str):
        manager.delete(draft_id)
        return {"deleted": draft_id}

    return app


def build_app(settings: Settings) -> FastAPI:
    store = JsonFileDraftStore(settings.draft_store_path) if settings.draft_store_path else MemoryDraftStore()
    client = PinpointClient(base_url=settings.api_url, api_key=settings.api_key)
    return create_app(DraftManager(store), client)


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    validate_config()
    uvicorn.run(build_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
