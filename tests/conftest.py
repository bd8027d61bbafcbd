# =============================================================================
# CONFTEST - Fixtures compartilhadas
# =============================================================================
# Banco SQLite em memória (um por teste) e um gerador falso no lugar da Groq
# =============================================================================

import json
import os
from datetime import timedelta
from typing import Any, Callable, List, Optional

import pytest

from src.db.deck_store import DeckStore
from src.db.publish_request_store import PublishRequestStore
from src.db.quiz_store import QuizStore
from src.db.session import build_engine, init_db
from src.schemas.flashcard_schemas import FlashcardGenerationResult
from src.schemas.moderation_schemas import ModerationResult
from src.schemas.quiz_schemas import QuizGenerationResult
from src.utils.clock import utcnow
from src.utils.config import Settings


def question_for(card_id: str, term: str) -> dict:
    return {
        "question": f"Which term matches the definition of {term}?",
        "related_flashcard_id": card_id,
        "choices": [
            {"text": term, "is_correct": True},
            {"text": f"not {term} 1", "is_correct": False},
            {"text": f"not {term} 2", "is_correct": False},
            {"text": f"not {term} 3", "is_correct": False},
        ],
    }


class FakeGenerator:
    """
    Gerador falso: lê o arquivo preparado (como a Groq receberia) e devolve
    uma questão por flashcard. Registra cada chamada para as asserções.
    """

    def __init__(self):
        self.calls: List[dict] = []
        self.error: Optional[Exception] = None
        self.override: Any = None
        self.moderation: Any = {
            "overall_verdict": {
                "is_appropriate": True,
                "moderation_decision": "content is appropriate",
                "flagged_cards": [],
            }
        }
        self.flashcards: Any = None
        self.before_return: Optional[Callable[[], None]] = None

    async def generate(self, schema, instruction, source_path, *, tag):
        with open(source_path, encoding="utf-8") as handle:
            source = handle.read()
        self.calls.append({
            "schema": schema,
            "instruction": instruction,
            "source": source,
            "source_path": source_path,
            "tag": tag,
        })
        if self.error is not None:
            raise self.error
        if self.before_return is not None:
            self.before_return()
        if self.override is not None:
            return self.override

        if schema is QuizGenerationResult:
            cards = json.loads(source)
            return QuizGenerationResult.model_validate(
                {"quiz": [question_for(c["id"], c["term"]) for c in cards], "errorMessage": None}
            )
        if schema is ModerationResult:
            return ModerationResult.model_validate(self.moderation)
        if schema is FlashcardGenerationResult:
            return FlashcardGenerationResult.model_validate(self.flashcards)
        raise AssertionError(f"schema inesperado: {schema}")

    def calls_for(self, schema) -> List[dict]:
        return [call for call in self.calls if call["schema"] is schema]


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        GROQ_API_KEY="test-key",
        TMP_DIR=str(tmp_path / "staging"),
        REQUEST_TIMEOUT_SECONDS=5,
        RATE_LIMIT_RETRY_SECONDS=0,
        LOG_LEVEL="ERROR",
    )


@pytest.fixture
def deck_store(engine) -> DeckStore:
    return DeckStore(engine)


@pytest.fixture
def quiz_store(engine) -> QuizStore:
    return QuizStore(engine)


@pytest.fixture
def publish_store(engine) -> PublishRequestStore:
    return PublishRequestStore(engine)


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def make_deck(deck_store):
    """Cria um deck com `count` flashcards criados `age` atrás."""

    def _make(count: int, age: timedelta = timedelta(days=2), owner_id: str = "user-1") -> str:
        deck_id = deck_store.create_deck(owner_id=owner_id, title="Algorithms", description="Big O and friends")
        if count:
            deck_store.add_flashcards(
                deck_id,
                [{"term": f"Term {i}", "definition": f"Definition {i}"} for i in range(count)],
                created_at=utcnow() - age,
            )
        return deck_id

    return _make


def staging_is_empty(settings: Settings) -> bool:
    return not os.path.isdir(settings.TMP_DIR) or not os.listdir(settings.TMP_DIR)
