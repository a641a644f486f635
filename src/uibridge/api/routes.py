"""API routes for the UIBridge controller."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import FileResponse

from uibridge.exceptions import ClientNotFoundError, CommandNotFoundError, NoClientsConnectedError
from uibridge.models.execution import utc_now_iso
from uibridge.models.remote import CommandResultRequest, ExecuteRequest, RegisterClientRequest
from uibridge.remote.sessions import SessionStore

router = APIRouter()


def get_store(request: Request) -> SessionStore:
    """The ``SessionStore`` owned by the running app."""
    return request.app.state.sessions


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/health")
def health(store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    count = store.connected_count
    return {
        "status": "healthy",
        "connectedClients": count,
        "mode": "client-server",
        "message": (
            "No page agents connected. Attach one with `uibridge attach URL`."
            if count == 0
            else f"{count} page agent(s) connected and ready for automation"
        ),
    }


@router.post("/register-client")
def register_client(req: RegisterClientRequest, store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    session = store.register(user_agent=req.user_agent, url=req.url)
    return {
        "success": True,
        "clientId": session.id,
        "message": "Client registered successfully",
        "connectedClients": store.connected_count,
    }


@router.post("/heartbeat/{client_id}")
def heartbeat(client_id: str, store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    try:
        server_time = store.heartbeat(client_id)
    except ClientNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True, "serverTime": server_time}


@router.post("/execute")
def execute(req: ExecuteRequest, store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    """Queue a command for a page agent. Returns immediately with a command id."""
    try:
        queued = store.enqueue(req.command, selector=req.selector, options=req.options, client_id=req.client_id)
    except NoClientsConnectedError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ClientNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {
        "success": True,
        "commandId": queued.id,
        "clientId": queued.client_id,
        "status": "queued",
        "message": f"Command queued for execution in client {queued.client_id}",
        "timestamp": queued.timestamp,
    }


@router.get("/poll-commands/{client_id}")
def poll_commands(client_id: str, store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    """Hand the queued commands to the page agent; the queue is cleared."""
    try:
        commands = store.poll(client_id)
    except ClientNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {
        "success": True,
        "commands": [command.wire() for command in commands],
        "timestamp": utc_now_iso(),
    }


@router.post("/command-result/{command_id}")
def post_command_result(
    command_id: str, req: CommandResultRequest, store: SessionStore = Depends(get_store)
) -> dict[str, Any]:
    body = req.model_dump(exclude_unset=True)
    try:
        command = store.record_result(command_id, body)
    except CommandNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True, "commandId": command.id, "status": command.status.value}


@router.get("/command-result/{command_id}")
def get_command_result(command_id: str, store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    try:
        command = store.get_command(command_id)
    except CommandNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {
        "commandId": command.id,
        "command": command.command,
        "clientId": command.client_id,
        "status": command.status.value,
        "result": command.result,
        "error": command.error,
        "completedAt": command.completed_at,
    }


@router.get("/clients")
def list_clients(store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    clients = store.clients()
    return {"success": True, "clients": clients, "total": len(clients)}


@router.get("/activity")
def activity(limit: int = Query(50, ge=1), store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    return {
        "success": True,
        "commands": store.activity(limit),
        "total": store.activity_total,
        "connectedClients": store.connected_count,
        "timestamp": utc_now_iso(),
    }


@router.get("/screenshots")
def list_screenshots(store: SessionStore = Depends(get_store)) -> dict[str, Any]:
    return {"screenshots": store.list_screenshots()}


@router.get("/screenshots/{filename}")
def get_screenshot(filename: str, store: SessionStore = Depends(get_store)) -> FileResponse:
    path = store.screenshot_path(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Screenshot not found")
    return FileResponse(path)
