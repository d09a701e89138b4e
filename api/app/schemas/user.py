from pydantic import BaseModel, Field


class UserBrief(BaseModel):
    """Brief user info for embedding in group and message payloads."""
    id: int
    name: str = Field(..., alias='nombre')
    avatar: str | None = Field(None, alias='foto_perfil')

    class Config:
        populate_by_name = True
