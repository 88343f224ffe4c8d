from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from repo_recon.crud.job_status import get_analysis_status, get_comparison_status
from repo_recon.database import SessionLocal
from repo_recon.models.job_status import COMPLETED
from repo_recon.progress.broadcasters import (
    CHANNELS,
    COMPARISON_CHANNEL,
    AnalysisProgressBroadcaster,
    ComparisonProgressBroadcaster,
    stream_name_for,
    timestamp,
)
from repo_recon.progress.bus import get_progress_bus


logger = logging.getLogger("repo_recon.api.cable")

router = APIRouter(tags=["cable"])

TERMINAL_EVENTS = ("complete", "error")


async def terminal_event_for(channel: str, session_id: str) -> dict[str, Any] | None:
    """The event a late subscriber would have missed, if the job already finished."""

    async with SessionLocal() as session:
        if channel == COMPARISON_CHANNEL:
            record = await get_comparison_status(session, session_id=session_id)
            if record is None or not record.is_terminal:
                return None
            if record.status == COMPLETED:
                event = ComparisonProgressBroadcaster.complete_event(record.comparison_id)
            else:
                event = ComparisonProgressBroadcaster.error_event(record.error_message or "")
        else:
            record = await get_analysis_status(session, session_id=session_id)
            if record is None or not record.is_terminal:
                return None
            if record.status == COMPLETED:
                event = AnalysisProgressBroadcaster.complete_event(record.repository_id)
            else:
                event = AnalysisProgressBroadcaster.error_event(record.error_message or "")

    event["timestamp"] = timestamp()
    return event


async def _forward_until_terminal(websocket: WebSocket, subscription) -> None:
    async for event in subscription:
        await websocket.send_json(event)
        if event.get("type") in TERMINAL_EVENTS:
            return


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Clients never send anything meaningful; drain until the socket goes away.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/cable/{channel}")
async def progress_stream(websocket: WebSocket, channel: str, session_id: str | None = Query(None)):
    """Forward one job's progress events until it completes, fails, or the client leaves."""

    session_id = (session_id or "").strip()
    if channel not in CHANNELS or not session_id:
        logger.info("cable_rejected channel=%s session_id=%r", channel, session_id)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    stream = stream_name_for(channel, session_id)

    # Subscribe before the status check so a job finishing in between is not missed.
    subscription = await get_progress_bus().subscribe(stream)
    try:
        event = await terminal_event_for(channel, session_id)
        if event is not None:
            await websocket.send_json(event)
        else:
            forward = asyncio.create_task(_forward_until_terminal(websocket, subscription))
            disconnect = asyncio.create_task(_wait_for_disconnect(websocket))
            done, pending = await asyncio.wait({forward, disconnect}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)

            if forward in done:
                forward.result()
            if disconnect in done:
                disconnect.result()
                logger.info("cable_client_disconnected stream=%s", stream)
                return
    except WebSocketDisconnect:
        logger.info("cable_client_disconnected stream=%s", stream)
        return
    finally:
        await subscription.aclose()

    await websocket.close()
    logger.info("cable_closed stream=%s", stream)
