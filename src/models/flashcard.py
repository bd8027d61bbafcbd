from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship

from src.utils.clock import utcnow


class Flashcard(SQLModel, table=True):
    # Imutável depois de criado: só acrescentamos cards ao deck
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    term: str
    definition: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)

    deck_id: str = Field(foreign_key="deck.id", index=True)
    deck: Optional["Deck"] = Relationship(back_populates="flashcards")
