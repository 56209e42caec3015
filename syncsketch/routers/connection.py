from __future__ import annotations

from fastapi import APIRouter, Body, Request

from syncsketch.db.models import User
from syncsketch.services.connection_service import ConnectionService
from syncsketch.services.session_service import CurrentUser

router = APIRouter(prefix="/api/v1/connection", tags=["connection"])


def _get_connection_service(request: Request) -> ConnectionService:
    svc = getattr(getattr(request.app, "state", None), "connection_service", None)
    if not svc:
        raise RuntimeError("ConnectionService not configured")
    return svc


@router.post("/sendRequest", status_code=201)
def send_request(request: Request, payload: dict = Body(default={}), user: User = CurrentUser):
    created = _get_connection_service(request).send_request(user, payload.get("toUserId"))
    return {"message": "Connection request sent successfully", "request": created}


@router.post("/accept/{request_id}")
def accept_request(request_id: str, request: Request, user: User = CurrentUser):
    connection = _get_connection_service(request).accept(user, request_id)
    return {"message": "Connection request accepted", "connection": connection}


@router.post("/reject/{request_id}")
def reject_request(request_id: str, request: Request, user: User = CurrentUser):
    _get_connection_service(request).reject(user, request_id)
    return {"message": "Connection request rejected"}


@router.delete("/cancel/{request_id}")
def cancel_request(request_id: str, request: Request, user: User = CurrentUser):
    _get_connection_service(request).cancel(user, request_id)
    return {"message": "Connection request cancelled"}


@router.delete("/remove/{connection_id}")
def remove_connection(connection_id: str, request: Request, user: User = CurrentUser):
    _get_connection_service(request).remove(user, connection_id)
    return {"message": "Connection removed successfully"}


@router.get("/")
def list_connections(request: Request, user: User = CurrentUser):
    connections = _get_connection_service(request).list_connections(user)
    return {"message": "Connections retrieved successfully", "connections": connections}


@router.get("/requests")
def list_requests(request: Request, user: User = CurrentUser):
    requests = _get_connection_service(request).list_pending(user)
    return {"message": "Pending requests retrieved successfully", "requests": requests}


@router.get("/sent")
def list_sent(request: Request, user: User = CurrentUser):
    requests = _get_connection_service(request).list_sent(user)
    return {"message": "Sent requests retrieved successfully", "requests": requests}


@router.get("/status/{user_id}")
def connection_status(user_id: str, request: Request, user: User = CurrentUser):
    result = _get_connection_service(request).status(user, user_id)
    return {
        "message": "Connection status retrieved successfully",
        "status": result.status,
        "connectionId": result.connection_id,
    }
