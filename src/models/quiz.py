from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4
from sqlalchemy import JSON, Column, DateTime, Index, text
from sqlmodel import SQLModel, Field, Relationship

from src.utils.clock import utcnow

MULTIPLE_CHOICE = "multiple-choice"


class Quiz(SQLModel, table=True):
    # No máximo um quiz "vivo" por deck e tipo. O índice parcial é o que
    # torna o create-if-absent atômico no banco.
    __table_args__ = (
        Index(
            "uq_quiz_live_deck_type",
            "associated_deck_id",
            "quiz_type",
            unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("NOT is_deleted"),
        ),
    )

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    associated_deck_id: str = Field(foreign_key="deck.id", index=True)
    quiz_type: str = MULTIPLE_CHOICE
    is_deleted: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    questions: List["QuizQuestion"] = Relationship(back_populates="quiz")


class QuizQuestion(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    quiz_id: str = Field(foreign_key="quiz.id", index=True)
    # Ordem de inserção; questões novas sempre vão para o fim
    position: int
    question: str
    # Referência de volta ao flashcard de origem (não é posse)
    related_flashcard_id: Optional[str] = None
    # [{"text": "...", "is_correct": bool}] x4
    choices: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    quiz: Optional[Quiz] = Relationship(back_populates="questions")
