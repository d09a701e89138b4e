import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.services.realtime_gateway import RealtimeGateway
from app.services.realtime_hub import WebSocketConnection

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket('/ws')
async def realtime_endpoint(websocket: WebSocket, user_id: int = Query(...)):
    """Realtime chat and group updates. user_id comes from the auth layer."""
    hub = websocket.app.state.hub
    gateway = RealtimeGateway(hub)

    await websocket.accept()
    connection = WebSocketConnection(websocket, user_id)
    connection.start()
    hub.connect(connection)
    try:
        while True:
            raw = await websocket.receive_text()
            gateway.handle_frame(connection, raw)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f'Realtime error for user {user_id}: {e}', exc_info=True)
    finally:
        hub.on_disconnect(connection)
        await connection.close()
