from datetime import datetime
from typing import List, Optional
from uuid import uuid4
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship

from src.utils.clock import utcnow

DEFAULT_COVER_PHOTO = "deckCovers/default/deckDefault.png"


class Deck(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    owner_id: str = Field(index=True)
    title: str
    description: Optional[str] = None
    cover_photo: str = DEFAULT_COVER_PHOTO
    is_private: bool = Field(default=True)
    is_deleted: bool = Field(default=False)
    flashcard_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    # Marca d'água: último estado dos flashcards incorporado ao quiz (None = nunca virou quiz)
    made_to_quiz_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    flashcards: List["Flashcard"] = Relationship(back_populates="deck")
