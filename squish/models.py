from datetime import datetime

from pydantic import BaseModel


class Link(BaseModel):
    """One row of the ``links`` table."""

    id: int
    original_url: str
    short_alias: str
    created_at: datetime


class ShortLink(BaseModel):
    link: str
