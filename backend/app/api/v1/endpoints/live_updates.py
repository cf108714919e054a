"""
Live Update Endpoints.

Viewers hold a WebSocket open and receive a bare "status-updated" signal
whenever a parcel changes; they re-fetch what they display.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from backend.app.core.context import AppContext, get_context

router = APIRouter(tags=["Live Updates"])


@router.websocket("/ws/status")
async def status_updates(websocket: WebSocket):
    """Subscribe to status change signals until the client disconnects."""
    hub = websocket.app.state.context.hub
    await hub.connect(websocket)
    try:
        while True:
            # Inbound messages are ignored; receiving keeps disconnects observable
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)


@router.post("/update-status")
async def trigger_status_update(context: AppContext = Depends(get_context)):
    """Manually notify every connected viewer to re-fetch."""
    context.notifier.broadcast_changed()
    return {"message": "Status updated and clients notified"}
