from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """Client-side settings (env prefix MEETUP_)."""

    api_url: str = 'http://localhost:8000'
    ws_path: str = '/ws'

    # Transport
    connect_timeout_seconds: float = 5.0
    reconnection_attempts: int = 5
    reconnection_delay_seconds: float = 1.0
    http_timeout_seconds: float = 15.0

    # Chat history page size for "load earlier messages"
    page_size: int = 20

    class Config:
        env_prefix = 'MEETUP_'
        env_file = '.env'
        extra = 'ignore'

    @property
    def ws_url(self) -> str:
        base = self.api_url.rstrip('/')
        if base.startswith('https://'):
            base = 'wss://' + base[len('https://'):]
        elif base.startswith('http://'):
            base = 'ws://' + base[len('http://'):]
        return base + self.ws_path
