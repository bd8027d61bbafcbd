from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from src.utils.clock import utcnow


class UsageLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)

    # Qual modelo respondeu (ex: llama-3.3-70b-versatile)
    model_id: str = Field(index=True)

    # Métricas devolvidas pela Groq
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    time_taken_seconds: float = 0.0

    # Contexto (ex: "quiz", "moderation", "flashcards")
    context_tag: str
