from __future__ import annotations

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse

from eventease.domain.errors import EventStoreError
from eventease.domain.events import EventFilter
from eventease.services.backup_service import BackupService
from eventease.services.event_store import EventStore

router = APIRouter(prefix="/api", tags=["events"])


def _get_store(request: Request) -> EventStore:
    store = getattr(getattr(request.app, "state", None), "event_store", None)
    if not store:
        raise RuntimeError("EventStore not configured")
    return store


def _get_backup_service(request: Request) -> BackupService:
    svc = getattr(getattr(request.app, "state", None), "backup_service", None)
    if not svc:
        raise RuntimeError("BackupService not configured")
    return svc


def error_response(err: EventStoreError) -> JSONResponse:
    return JSONResponse({"ok": False, "error": err.code, "message": err.message}, status_code=err.status_code)


async def handle_store_error(request: Request, exc: EventStoreError) -> JSONResponse:
    return error_response(exc)


@router.get("/events")
def list_events(
    request: Request,
    category: str | None = None,
    status: str | None = None,
    search: str | None = None,
):
    store = _get_store(request)
    events = store.filter(EventFilter(category=category, status=status, search=search))
    return {"ok": True, "data": [event.to_dict() for event in events], "total": len(events)}


@router.get("/events/{event_id}")
def get_event(event_id: str, request: Request):
    event = _get_store(request).get_by_id(event_id)
    return {"ok": True, "data": event.to_dict()}


@router.post("/events", status_code=201)
def create_event(request: Request, payload: dict = Body(...)):
    event = _get_store(request).create(payload)
    return {"ok": True, "message": "Event created successfully", "data": event.to_dict()}


@router.put("/events/{event_id}")
def update_event(event_id: str, request: Request, payload: dict = Body(...)):
    event = _get_store(request).update(event_id, payload)
    return {"ok": True, "message": "Event updated successfully", "data": event.to_dict()}


@router.delete("/events/{event_id}")
def delete_event(event_id: str, request: Request):
    event = _get_store(request).delete(event_id)
    return {"ok": True, "message": "Event deleted successfully", "data": event.to_dict()}


@router.post("/events/{event_id}/register")
def register_for_event(event_id: str, request: Request):
    event = _get_store(request).register(event_id)
    return {"ok": True, "message": "Successfully registered for event", "data": event.to_dict()}


@router.get("/categories")
def list_categories(request: Request):
    return {"ok": True, "data": _get_store(request).get_categories()}


@router.get("/stats")
def stats(request: Request):
    return {"ok": True, "data": _get_store(request).get_stats().to_dict()}


@router.get("/backups")
def list_backups(request: Request):
    backups = _get_backup_service(request).list_backups()
    return {
        "ok": True,
        "data": [{"id": info.backup_id, "size": info.size} for info in backups],
        "total": len(backups),
    }


@router.post("/backups", status_code=201)
def create_backup(request: Request):
    result = _get_backup_service(request).create_backup()
    return {
        "ok": True,
        "data": {"id": result.backup_id, "events": result.event_count, "pruned": list(result.pruned)},
    }
