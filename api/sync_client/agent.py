"""
Client-side synchronisation of the group list and open group chats.

The agent applies server broadcasts to a local cache. Group events reach every
registered user, so membership filtering happens here; duplicate deliveries
(page fetch racing a broadcast, repeated events) are dropped by id.
"""
import logging
from enum import Enum
from typing import Callable

from app.schemas.chat import GroupOut, MessageOut
from app.schemas.realtime import RealtimeEvent
from sync_client.api import MeetupApiClient
from sync_client.connection import ConnectionUnavailable, RealtimeConnection
from sync_client.events import (
    SERVER_EVENT_NAMES,
    DeletedGroupEvent,
    NewGroupEvent,
    NewMessageEvent,
    ServerEvent,
    UpdatedGroupEvent,
)

logger = logging.getLogger(__name__)


class ChatState(str, Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    JOINED = 'joined'


class ExitReason(str, Enum):
    USER_CLOSED = 'user_closed'
    REMOVED_FROM_GROUP = 'removed_from_group'
    GROUP_DELETED = 'group_deleted'


class ChatClosedError(Exception):
    """Raised when using a chat session after it was closed."""
    pass


ForcedExitCallback = Callable[[int, ExitReason], None]


class ChatSession:
    """Local view of one group's chat: ordered history, dedup set and room state."""

    def __init__(
        self,
        group: GroupOut,
        user_id: int,
        connection: RealtimeConnection,
        api: MeetupApiClient,
        page_size: int = 20,
        on_forced_exit: ForcedExitCallback | None = None,
    ):
        self.group = group
        self.user_id = user_id
        self.connection = connection
        self.api = api
        self.page_size = page_size
        self.on_forced_exit = on_forced_exit

        self.messages: list[MessageOut] = []
        self.processed_message_ids: set[int] = set()
        self.state = ChatState.DISCONNECTED
        self.has_more = False
        self.closed = False
        self.exit_reason: ExitReason | None = None
        self._loading_more = False

    @property
    def group_id(self) -> int:
        return self.group.id

    @property
    def loading_more(self) -> bool:
        return self._loading_more

    def _ensure_open(self):
        if self.closed:
            raise ChatClosedError(f'Chat of group {self.group_id} is closed ({self.exit_reason.value})')

    def _room_payload(self) -> dict:
        return {'userId': self.user_id, 'groupId': self.group_id}

    async def join(self) -> bool:
        """Join the group's room. False when the socket is unavailable or the chat closed meanwhile."""
        self._ensure_open()
        if self.state == ChatState.JOINED:
            return True

        self.state = ChatState.CONNECTING
        connected = await self.connection.ensure_connected()
        if self.closed:
            return False
        if not connected:
            self.state = ChatState.DISCONNECTED
            return False
        try:
            await self.connection.emit(RealtimeEvent.JOIN_ROOM.value, self._room_payload())
        except ConnectionUnavailable as e:
            logger.error(f'Joining chat of group {self.group_id} failed: {e}')
            self.state = ChatState.DISCONNECTED
            return False

        if self.closed:
            # Force-closed while the join frame was in flight; close() saw no room to leave
            await self._leave_room()
            self.state = ChatState.DISCONNECTED
            return False

        self.state = ChatState.JOINED
        return True

    async def open(self) -> bool:
        """Join the room, then load the newest page of history."""
        joined = await self.join()
        if self.closed:
            return False
        await self.load_initial()
        return joined

    async def load_initial(self):
        """Replace history with the newest page, keeping live messages that arrived meanwhile."""
        self._ensure_open()
        page = await self.api.list_messages(self.group_id, 0, self.page_size)
        if self.closed:
            return

        page_ids = {m.id for m in page.messages}
        arrived = [m for m in self.messages if m.id not in page_ids]
        self.messages = list(page.messages) + arrived
        self.processed_message_ids = {m.id for m in self.messages}
        self.has_more = page.has_more

    async def load_more(self) -> int:
        """
        Prepend the next older page. Returns how many messages were added.

        Ignored while another page fetch is in flight or once the server said
        nothing older remains. The cursor is the number of messages held, so
        live messages received since the last fetch are accounted for.
        """
        self._ensure_open()
        if self._loading_more or not self.has_more:
            return 0

        self._loading_more = True
        try:
            page = await self.api.list_messages(self.group_id, len(self.messages), self.page_size)
            if self.closed:
                return 0
            older = [m for m in page.messages if m.id not in self.processed_message_ids]
            self.messages = older + self.messages
            self.processed_message_ids.update(m.id for m in older)
            self.has_more = page.has_more
            return len(older)
        finally:
            self._loading_more = False

    async def _leave_room(self):
        try:
            await self.connection.emit(RealtimeEvent.LEAVE_ROOM.value, self._room_payload())
        except ConnectionUnavailable as e:
            # Server-side disconnect cleanup releases the room
            logger.warning(f'Leaving chat of group {self.group_id} failed: {e}')

    def apply_message(self, message: MessageOut) -> bool:
        """Append a broadcast message unless already seen. Returns True if appended."""
        if self.closed or message.id in self.processed_message_ids:
            return False
        self.processed_message_ids.add(message.id)
        self.messages.append(message)
        return True

    async def close(self, reason: ExitReason = ExitReason.USER_CLOSED) -> bool:
        """
        Leave the room and drop local state. The session is terminal afterwards.

        A reason other than USER_CLOSED is a forced exit and fires
        on_forced_exit. Returns False if the session was already closed.
        """
        if self.closed:
            return False
        self.closed = True
        self.exit_reason = reason

        if self.state == ChatState.JOINED:
            await self._leave_room()
        self.state = ChatState.DISCONNECTED
        self.messages = []
        self.processed_message_ids = set()
        self.has_more = False

        if reason != ExitReason.USER_CLOSED:
            logger.info(f'Chat of group {self.group_id} force-closed: {reason.value}')
            if self.on_forced_exit is not None:
                self.on_forced_exit(self.group_id, reason)
        return True


class ClientSyncAgent:
    """Keeps one user's group list and open chats consistent with server broadcasts."""

    def __init__(
        self,
        user_id: int,
        connection: RealtimeConnection,
        api: MeetupApiClient,
        page_size: int = 20,
        on_forced_exit: ForcedExitCallback | None = None,
    ):
        self.user_id = user_id
        self.connection = connection
        self.api = api
        self.page_size = page_size
        self.on_forced_exit = on_forced_exit

        self.groups: list[GroupOut] = []
        self.processed_group_ids: set[int] = set()
        self.chats: dict[int, ChatSession] = {}
        self.registered = False

    # Lifecycle

    def attach(self):
        """Route the connection's server events to this agent."""
        for name in SERVER_EVENT_NAMES:
            self.connection.on(name, self.handle_event)

    def detach(self):
        for name in SERVER_EVENT_NAMES:
            self.connection.off(name)

    async def start(self) -> bool:
        """Load the group list and register for group updates."""
        self.attach()
        await self.load_groups()
        return await self.register_for_group_updates()

    async def stop(self):
        for chat in list(self.chats.values()):
            await chat.close()
        self.chats.clear()
        await self.unregister_from_group_updates()
        self.detach()

    async def register_for_group_updates(self) -> bool:
        if not await self.connection.ensure_connected():
            return False
        try:
            await self.connection.emit(
                RealtimeEvent.REGISTER_FOR_GROUP_UPDATES.value, {'userId': self.user_id}
            )
        except ConnectionUnavailable as e:
            logger.error(f'Registering user {self.user_id} for group updates failed: {e}')
            return False
        self.registered = True
        return True

    async def unregister_from_group_updates(self) -> bool:
        if not self.registered:
            return True
        try:
            await self.connection.emit(RealtimeEvent.UNREGISTER_FROM_GROUP_UPDATES.value)
        except ConnectionUnavailable as e:
            logger.error(f'Unregistering user {self.user_id} from group updates failed: {e}')
            return False
        self.registered = False
        return True

    # Group list

    async def load_groups(self) -> list[GroupOut]:
        """Replace the local list with the server's and rebuild the known-id set."""
        self.groups = await self.api.list_groups(self.user_id)
        self.processed_group_ids = {g.id for g in self.groups}
        return self.groups

    def find_group(self, group_id: int) -> GroupOut | None:
        return next((g for g in self.groups if g.id == group_id), None)

    # Chats

    async def open_chat(self, group: GroupOut) -> ChatSession:
        """Open (or return the already open) chat of group. Check `state` for the join result."""
        existing = self.chats.get(group.id)
        if existing is not None and not existing.closed:
            return existing

        chat = ChatSession(
            group,
            self.user_id,
            self.connection,
            self.api,
            page_size=self.page_size,
            on_forced_exit=self.on_forced_exit,
        )
        self.chats[group.id] = chat
        await chat.open()
        return chat

    async def close_chat(self, group_id: int) -> bool:
        chat = self.chats.pop(group_id, None)
        if chat is None:
            return False
        return await chat.close()

    # Server events

    async def handle_event(self, event: ServerEvent):
        if isinstance(event, NewMessageEvent):
            self._on_new_message(event.message)
        elif isinstance(event, NewGroupEvent):
            self._on_new_group(event.group)
        elif isinstance(event, UpdatedGroupEvent):
            await self._on_updated_group(event.group)
        elif isinstance(event, DeletedGroupEvent):
            await self._on_deleted_group(event.group_id)
        else:
            raise TypeError(f'Unhandled server event: {event!r}')

    def _on_new_message(self, message: MessageOut):
        chat = self.chats.get(message.group.id)
        if chat is None:
            return
        chat.apply_message(message)

    def _on_new_group(self, group: GroupOut):
        if not group.has_member(self.user_id):
            return
        if group.id in self.processed_group_ids:
            return
        self.processed_group_ids.add(group.id)
        self.groups.append(group)

    async def _on_updated_group(self, group: GroupOut):
        if group.has_member(self.user_id):
            self._upsert_group(group)
            chat = self.chats.get(group.id)
            if chat is not None:
                chat.group = group
            return

        self._drop_group(group.id)
        await self._force_exit(group.id, ExitReason.REMOVED_FROM_GROUP)

    async def _on_deleted_group(self, group_id: int):
        self._drop_group(group_id)
        await self._force_exit(group_id, ExitReason.GROUP_DELETED)

    def _upsert_group(self, group: GroupOut):
        self.processed_group_ids.add(group.id)
        for index, existing in enumerate(self.groups):
            if existing.id == group.id:
                self.groups[index] = group
                return
        self.groups.append(group)

    def _drop_group(self, group_id: int):
        self.groups = [g for g in self.groups if g.id != group_id]
        self.processed_group_ids.discard(group_id)

    async def _force_exit(self, group_id: int, reason: ExitReason):
        chat = self.chats.pop(group_id, None)
        if chat is not None:
            await chat.close(reason)
