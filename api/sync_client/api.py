"""HTTP calls the chat and group screens make against the API."""
import logging
from datetime import datetime

import httpx

from app.schemas.chat import GroupOut, MessagePage
from sync_client.config import ClientSettings

logger = logging.getLogger(__name__)


class MeetupApiClient:
    def __init__(
        self,
        settings: ClientSettings,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        headers = {'Authorization': f'Bearer {token}'} if token else {}
        self.client = client or httpx.AsyncClient(
            base_url=settings.api_url,
            headers=headers,
            timeout=settings.http_timeout_seconds,
        )

    async def aclose(self):
        await self.client.aclose()

    async def list_messages(self, group_id: int, skip: int = 0, take: int = 100) -> MessagePage:
        """Fetch one history page. Failures yield an empty page with nothing more to load."""
        try:
            response = await self.client.get(
                f'/api/messages/by-group/{group_id}', params={'skip': skip, 'take': take}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f'Fetching messages of group {group_id} failed: {e}')
            return MessagePage()
        return MessagePage.model_validate(response.json())

    async def send_message(
        self,
        text: str,
        sender_id: int,
        group_id: int,
        image: tuple[str, bytes, str] | None = None,
        now: datetime | None = None,
    ) -> int:
        """Send a message, optionally with an image (filename, bytes, content type). Returns its id."""
        now = now or datetime.now()
        form = {
            'texto': text,
            'usuario': str(sender_id),
            'grupo': str(group_id),
            'fecha': f'{now.day}/{now.month}/{now.year}',
            'hora': f'{now.hour}:{now.minute:02d}',
        }
        files = {'file': image} if image else None
        response = await self.client.post('/api/messages', data=form, files=files)
        response.raise_for_status()
        return response.json()['id']

    async def list_groups(self, user_id: int) -> list[GroupOut]:
        try:
            response = await self.client.get(f'/api/groups/by-user/{user_id}')
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f'Fetching groups of user {user_id} failed: {e}')
            return []
        return [GroupOut.model_validate(g) for g in response.json()]

    async def create_group(self, name: str, description: str, member_ids: list[int]) -> GroupOut | None:
        response = await self.client.post(
            '/api/groups',
            json={'nombre': name, 'descripcion': description, 'usuarios': member_ids},
        )
        response.raise_for_status()
        body = response.json()
        return GroupOut.model_validate(body) if body else None

    async def rename_group(self, group_id: int, name: str) -> int:
        response = await self.client.post(f'/api/groups/{group_id}/name', json={'nombre': name})
        response.raise_for_status()
        return response.json()['affected']

    async def redescribe_group(self, group_id: int, description: str) -> int:
        response = await self.client.post(
            f'/api/groups/{group_id}/description', json={'descripcion': description}
        )
        response.raise_for_status()
        return response.json()['affected']

    async def change_group_photo(self, group_id: int, filename: str, content: bytes, content_type: str) -> int:
        response = await self.client.post(
            f'/api/groups/{group_id}/photo', files={'file': (filename, content, content_type)}
        )
        response.raise_for_status()
        return response.json()['affected']

    async def add_member(self, group_id: int, user_id: int) -> int:
        response = await self.client.post(f'/api/groups/{group_id}/members', json={'usuario': user_id})
        response.raise_for_status()
        return response.json()['id']

    async def remove_member(self, group_id: int, user_id: int) -> int:
        response = await self.client.delete(f'/api/groups/{group_id}/members/{user_id}')
        response.raise_for_status()
        return response.json()['removed']
