import re
from typing import Any, Optional

from loguru import logger

from src.db.deck_store import DeckStore
from src.schemas.deck_schemas import ApiResponse, GenerateDeckRequest
from src.schemas.flashcard_schemas import FlashcardGenerationResult
from src.services.ai_orchestrator import GenerationClient, TAG_FLASHCARDS, decode_result
from src.services.prompts import flashcard_prompt
from src.utils.config import Settings
from src.utils.tempfiles import staged_source

MIN_FLASHCARDS = 10
MAX_FLASHCARDS = 50
GENERATION_ERROR_MESSAGE = "An error occured during the generation of deck"


def clean_title(title: str) -> str:
    return re.sub(r"\s+", " ", title).strip()


def parse_flashcard_count(value: Any) -> Optional[int]:
    """Inteiro (ou string de dígitos) entre 10 e 50; qualquer outra coisa -> None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and MIN_FLASHCARDS <= value <= MAX_FLASHCARDS:
        return value
    return None


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def _rejected(status: int, user_id: Optional[str], error: str, message: str) -> ApiResponse:
    return ApiResponse(
        status=status,
        request_owner_id=user_id,
        message=GENERATION_ERROR_MESSAGE,
        data={"error": error, "message": message},
    )


class DeckGenerationService:
    """Gera um deck novo (termos e definições) a partir de assunto/tópico."""

    def __init__(self, decks: DeckStore, generator: GenerationClient, settings: Settings):
        self.decks = decks
        self.generator = generator
        self.settings = settings

    def validate(self, request: GenerateDeckRequest, user_id: Optional[str]) -> Optional[ApiResponse]:
        if _blank(request.subject) and _blank(request.topic):
            return _rejected(
                400, user_id, "LACK_OF_INFO_AND_CONTEXT",
                "Subject or topic is required to know what the generated deck is about",
            )
        if _blank(request.title):
            return _rejected(400, user_id, "MISSING_REQUIRED_FIELD_TITLE", "request is missing the required field: title")
        if _blank(request.description):
            return _rejected(
                400, user_id, "MISSING_REQUIRED_FIELD_DESCRIPTION",
                "request is missing the required field: description",
            )
        if parse_flashcard_count(request.numberOfFlashcards) is None:
            return _rejected(
                422, user_id, "INVALID_NUMBER",
                f"Invalid number of flashcards. It must be between {MIN_FLASHCARDS} and {MAX_FLASHCARDS}.",
            )
        if _blank(user_id):
            return _rejected(400, user_id, "INVALID_USER_ID", "request owner is required")
        return None

    async def generate_deck(self, request: GenerateDeckRequest, user_id: Optional[str]) -> ApiResponse:
        rejected = self.validate(request, user_id)
        if rejected is not None:
            return rejected

        count = parse_flashcard_count(request.numberOfFlashcards)
        prompt = flashcard_prompt(request.topic, request.subject, request.deckDescription, count)
        logger.info(f"🧠 Gerando {count} flashcards sobre '{request.topic or request.subject}' para {user_id}")

        try:
            source = f"Subject: {request.subject or '-'}\nTopic: {request.topic or '-'}"
            with staged_source(source, "generateDeck", self.settings.TMP_DIR) as source_path:
                raw = await self.generator.generate(
                    FlashcardGenerationResult, prompt, source_path, tag=TAG_FLASHCARDS
                )
            flashcards = decode_result(FlashcardGenerationResult, raw).terms_and_definitions

            deck_id = self.decks.create_deck(
                owner_id=user_id,
                title=clean_title(request.title),
                description=request.description,
                cover_photo=request.coverPhoto,
            )
            self.decks.add_flashcards(deck_id, [card.model_dump() for card in flashcards])
        except Exception:
            logger.exception(f"❌ Falha na geração de deck para {user_id}")
            return ApiResponse(
                status=500,
                request_owner_id=user_id,
                message="An Error has occured while sending information to AI.",
                data={
                    "error": "UNKNOWN_SERVER_ERROR",
                    "message": "An unknown error was encountered. Please try again later",
                },
            )

        logger.info(f"✅ Deck {deck_id} criado com {len(flashcards)} flashcards")
        return ApiResponse(
            status=200,
            request_owner_id=user_id,
            message=f"Deck generation with {len(flashcards)} flashcards is successful",
            data={"deck_id": deck_id},
        )
