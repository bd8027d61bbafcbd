from datetime import datetime
from typing import Any, Dict
from uuid import uuid4
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field

from src.utils.clock import utcnow


class PublishRequest(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    user_id: str = Field(index=True)
    deck_id: str = Field(foreign_key="deck.id", index=True)
    requested_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    published_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    status: str = "FOR_APPROVAL"
    mod_verdict: str = "PENDING"

    # Veredito da IA (ModerationVerdict serializado)
    ai_verdict: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
