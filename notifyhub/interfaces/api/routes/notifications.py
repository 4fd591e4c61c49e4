"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from notifyhub.application.use_cases.notifications import (
    archive_old_notifications,
    create_notification,
    get_recent_notifications,
    get_unread_notification_count,
    list_notification_preferences,
    list_notification_types,
    mark_all_notifications_read,
    mark_notification_read,
    mute_notifications,
    upsert_notification_preference,
)
from notifyhub.config import get_settings
from notifyhub.domain.entities import CHANNEL_SUBSCRIBED
from notifyhub.infrastructure.backend import BackendUser
from notifyhub.infrastructure.database import get_db
from notifyhub.infrastructure.notifications import ChangeFeedPublisher
from notifyhub.interfaces.api.dependencies import (
    get_change_feed_publisher,
    get_current_user,
    require_admin,
    resolve_current_user,
)
from notifyhub.interfaces.api.schemas import (
    ArchiveRequest,
    ArchiveResponse,
    MarkAllReadResponse,
    MuteRequest,
    MuteResponse,
    NotificationCreate,
    NotificationCreated,
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
    NotificationRead,
    NotificationTypeRead,
    UnreadCountRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    limit: int = Query(20, ge=0, le=100),
    offset: int = Query(0, ge=0),
    filter: Literal["all", "unread", "important"] = Query("all"),
    db: Session = Depends(get_db),
    current_user: BackendUser = Depends(get_current_user),
) -> list[NotificationRead]:
    """Return a newest-first page of the authenticated user's notifications."""

    notifications = get_recent_notifications(
        db, user_id=current_user.id, limit=limit, offset=offset, filter=filter
    )
    return [NotificationRead.from_entity(notification) for notification in notifications]


@router.get("/unread-count", response_model=UnreadCountRead)
def unread_count(
    db: Session = Depends(get_db),
    current_user: BackendUser = Depends(get_current_user),
) -> UnreadCountRead:
    return UnreadCountRead(count=get_unread_notification_count(db, user_id=current_user.id))


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: BackendUser = Depends(get_current_user),
    publisher: ChangeFeedPublisher = Depends(get_change_feed_publisher),
) -> MarkAllReadResponse:
    updated = mark_all_notifications_read(db, user_id=current_user.id, publisher=publisher)
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: BackendUser = Depends(get_current_user),
    publisher: ChangeFeedPublisher = Depends(get_change_feed_publisher),
) -> None:
    found = mark_notification_read(
        db, user_id=current_user.id, notification_id=notification_id, publisher=publisher
    )
    if not found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )


@router.get("/types", response_model=list[NotificationTypeRead])
def list_types(
    db: Session = Depends(get_db),
    _: BackendUser = Depends(get_current_user),
) -> list[NotificationTypeRead]:
    return [NotificationTypeRead.from_entity(item) for item in list_notification_types(db)]


@router.get("/preferences", response_model=list[NotificationPreferenceRead])
def list_preferences(
    db: Session = Depends(get_db),
    current_user: BackendUser = Depends(get_current_user),
) -> list[NotificationPreferenceRead]:
    preferences = list_notification_preferences(db, user_id=current_user.id)
    return [NotificationPreferenceRead.from_entity(preference) for preference in preferences]


@router.put("/preferences/{type_id}", response_model=NotificationPreferenceRead)
def update_preference(
    type_id: int,
    payload: NotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    current_user: BackendUser = Depends(get_current_user),
) -> NotificationPreferenceRead:
    """Insert or update the caller's preference for one notification type."""

    try:
        preference = upsert_notification_preference(
            db, user_id=current_user.id, type_id=type_id, changes=payload.changes()
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return NotificationPreferenceRead.from_entity(preference)


@router.post("/mute", response_model=MuteResponse)
def mute(
    payload: MuteRequest,
    db: Session = Depends(get_db),
    current_user: BackendUser = Depends(get_current_user),
) -> MuteResponse:
    muted_until = mute_notifications(db, user_id=current_user.id, hours=payload.hours)
    return MuteResponse(muted_until=muted_until)


@router.post("/", response_model=NotificationCreated, status_code=status.HTTP_201_CREATED)
def create(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    _: BackendUser = Depends(require_admin),
    publisher: ChangeFeedPublisher = Depends(get_change_feed_publisher),
) -> NotificationCreated:
    """Address a notification to any user (administrators only)."""

    try:
        notification_id = create_notification(
            db,
            **payload.model_dump(),
            publisher=publisher,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return NotificationCreated(id=notification_id)


@router.post("/archive", response_model=ArchiveResponse)
def archive(
    payload: ArchiveRequest,
    db: Session = Depends(get_db),
    _: BackendUser = Depends(require_admin),
) -> ArchiveResponse:
    days_old = payload.days_old
    if days_old is None:
        days_old = get_settings().notification_retention_days
    return ArchiveResponse(archived=archive_old_notifications(db, days_old=days_old))


@router.websocket("/ws")
async def notifications_websocket(
    websocket: WebSocket,
    db: Session = Depends(get_db),
    publisher: ChangeFeedPublisher = Depends(get_change_feed_publisher),
) -> None:
    """Stream the authenticated user's notification row changes."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    try:
        user = resolve_current_user(token)
    except HTTPException:
        await websocket.close(code=1008)
        return

    manager = publisher.manager
    await manager.connect(user.id, websocket)
    try:
        await websocket.send_json({"type": "system", "status": CHANNEL_SUBSCRIBED})
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if not isinstance(ids, list):
                    continue
                for notification_id in ids:
                    mark_notification_read(
                        db,
                        user_id=user.id,
                        notification_id=str(notification_id),
                        publisher=publisher,
                    )
                continue
    except WebSocketDisconnect:
        manager.disconnect(user.id, websocket)
    except Exception:
        logger.exception("Notification websocket for user %s failed", user.id)
        manager.disconnect(user.id, websocket)
        raise
