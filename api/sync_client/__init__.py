from sync_client.agent import ChatClosedError, ChatSession, ChatState, ClientSyncAgent, ExitReason
from sync_client.api import MeetupApiClient
from sync_client.config import ClientSettings
from sync_client.connection import ConnectionUnavailable, RealtimeConnection

__all__ = [
    'ChatClosedError',
    'ChatSession',
    'ChatState',
    'ClientSyncAgent',
    'ExitReason',
    'MeetupApiClient',
    'ClientSettings',
    'ConnectionUnavailable',
    'RealtimeConnection',
]
