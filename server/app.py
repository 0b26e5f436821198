"""
FastAPI application for the sketch-to-ontology service.

Plays the editing collaborator around the pure core: stores canonical
documents, rejects invalid assignments while keeping the previously accepted
value, serves the derived N-Triples / Turtle views, per-document undo/redo,
the scene (pan/zoom) value and a server-sent-events change stream.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from ontosketch.compile_ontology import COMPILE_ERRORS, CompiledDocument, compile_document
from server.store import STATE_FILE, DocumentStore

env_path = Path(".env")
if not env_path.exists():
    for parent in Path.cwd().parents:
        candidate = parent / ".env"
        if candidate.exists():
            env_path = candidate
            break
if env_path.exists():
    load_dotenv(env_path)

HOST = os.environ.get("ONTOSKETCH_HOST", "127.0.0.1")
PORT = int(os.environ.get("ONTOSKETCH_PORT", "8000"))
HISTORY_LIMIT = int(os.environ.get("ONTOSKETCH_HISTORY_LIMIT", "100"))

store = DocumentStore(
    Path(os.environ.get("ONTOSKETCH_STATE_FILE", str(STATE_FILE))),
    history_limit=HISTORY_LIMIT,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    print(f"[app] Serving {len(store.list_documents())} document(s)", file=sys.stderr)
    try:
        yield
    finally:
        store.save()
        print("[app] Shutdown complete", file=sys.stderr)


app = FastAPI(title="ontosketch", lifespan=lifespan)

templates_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))


# ──────────────────────────────────────────────────────────────────
# HTML UI
# ──────────────────────────────────────────────────────────────────

@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {"documents": store.list_documents(), "scene": store.get_scene()},
    )


# ──────────────────────────────────────────────────────────────────
# SSE — Server-Sent Events
# ──────────────────────────────────────────────────────────────────

@app.get("/api/events")
async def sse_events(request: Request):
    """SSE stream that pushes the document list on every store change."""

    async def event_generator():
        last_version = -1
        try:
            while True:
                if await request.is_disconnected():
                    break
                data = json.dumps({"version": store.version, "documents": store.list_documents()})
                yield f"data: {data}\n\n"
                last_version = store.version
                try:
                    await asyncio.wait_for(
                        store.wait_for_change(last_version),
                        timeout=30.0,
                    )
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        except asyncio.CancelledError:
            return

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# ──────────────────────────────────────────────────────────────────
# REST API — Documents
# ──────────────────────────────────────────────────────────────────

def _document_payload(doc_id: str, value: str, **extra) -> dict:
    payload = {"id": doc_id, "value": value, "document": json.loads(value)}
    payload.update(extra)
    return payload


def _compiled(doc_id: str) -> CompiledDocument:
    value = store.get(doc_id)
    if value is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return compile_document(value)


@app.get("/api/documents")
async def list_documents():
    return JSONResponse(content=store.list_documents())


@app.put("/api/documents/{doc_id}")
async def put_document(doc_id: str, request: Request):
    body = await request.body()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="document must be valid UTF-8")
    try:
        value, changed = store.put(doc_id, text)
    except COMPILE_ERRORS as exc:
        print(f"[app] Rejected {doc_id}: {exc}", file=sys.stderr)
        raise HTTPException(status_code=400, detail=str(exc))
    return JSONResponse(content=_document_payload(doc_id, value, changed=changed))


@app.get("/api/documents/{doc_id}")
async def get_document(doc_id: str):
    value = store.get(doc_id)
    if value is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return JSONResponse(content=_document_payload(doc_id, value))


@app.delete("/api/documents/{doc_id}")
async def remove_document(doc_id: str):
    if store.remove(doc_id):
        return JSONResponse(content={"removed": doc_id})
    raise HTTPException(status_code=404, detail="Document not found")


@app.get("/api/documents/{doc_id}/ntriples", response_class=PlainTextResponse)
async def get_ntriples(doc_id: str):
    try:
        text = _compiled(doc_id).ntriples
    except COMPILE_ERRORS as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return PlainTextResponse(content=text, media_type="application/n-triples")


@app.get("/api/documents/{doc_id}/turtle", response_class=PlainTextResponse)
async def get_turtle(doc_id: str):
    try:
        text = _compiled(doc_id).turtle
    except COMPILE_ERRORS as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return PlainTextResponse(content=text, media_type="text/turtle")


@app.get("/api/documents/{doc_id}/classification")
async def get_classification(doc_id: str):
    return JSONResponse(content=_compiled(doc_id).classification_json())


@app.post("/api/documents/{doc_id}/undo")
async def undo(doc_id: str):
    if store.get(doc_id) is None:
        raise HTTPException(status_code=404, detail="Document not found")
    value = store.undo(doc_id)
    if value is None:
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return JSONResponse(content=_document_payload(doc_id, value))


@app.post("/api/documents/{doc_id}/redo")
async def redo(doc_id: str):
    if store.get(doc_id) is None:
        raise HTTPException(status_code=404, detail="Document not found")
    value = store.redo(doc_id)
    if value is None:
        raise HTTPException(status_code=409, detail="Nothing to redo")
    return JSONResponse(content=_document_payload(doc_id, value))


# ──────────────────────────────────────────────────────────────────
# REST API — Scene
# ──────────────────────────────────────────────────────────────────

@app.get("/api/scene")
async def get_scene():
    return JSONResponse(content=store.get_scene())


@app.put("/api/scene")
async def put_scene(request: Request):
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="scene must be an object")
    try:
        scene = store.set_scene(body)
    except COMPILE_ERRORS as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return JSONResponse(content=scene)


# ──────────────────────────────────────────────────────────────────
# Entrypoint
# ──────────────────────────────────────────────────────────────────

def run() -> None:
    import uvicorn
    uvicorn.run("server.app:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
