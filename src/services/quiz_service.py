import asyncio
import json
import random
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from src.db.deck_store import DeckStore
from src.db.quiz_store import QuizStore
from src.models.flashcard import Flashcard
from src.models.quiz import MULTIPLE_CHOICE
from src.schemas.deck_schemas import ApiResponse
from src.schemas.quiz_schemas import GeneratedQuestion, QuizContent, QuizGenerationResult
from src.services.ai_orchestrator import GenerationClient, TAG_QUIZ, decode_result
from src.services.prompts import quiz_prompt
from src.services.responses import failure, success
from src.utils.clock import utcnow
from src.utils.config import Settings
from src.utils.errors import (
    InvalidRequestError,
    NotFoundError,
    UpstreamError,
    AI_GENERATION_FAILED,
    DECK_NOT_FOUND,
    INVALID_DECK_ID,
    INVALID_USER_ID,
    NO_FLASHCARDS,
)
from src.utils.shuffle import shuffle_and_select
from src.utils.tempfiles import staged_source


class QuizPath(str, Enum):
    CREATE = "create"   # deck nunca virou quiz
    EXTEND = "extend"   # quiz existe e chegaram flashcards novos
    REUSE = "reuse"     # nada novo: só leitura


def decide_path(has_watermark: bool, has_quiz: bool, new_flashcards: int) -> QuizPath:
    """
    (made_to_quiz_at?, quiz?) -> caminho.
    Marca d'água sem quiz é inconsistente: vira EXTEND partindo de zero questões
    (todos os flashcards contam como novos).
    """
    if not has_quiz:
        return QuizPath.EXTEND if has_watermark else QuizPath.CREATE
    return QuizPath.EXTEND if new_flashcards > 0 else QuizPath.REUSE


SUCCESS_MESSAGES = {
    QuizPath.CREATE: "Quiz creation for deck with id:{deck_id} is successful",
    QuizPath.EXTEND: "Quiz creation for new flashcards in deck {deck_id} is successful",
    QuizPath.REUSE: "There is already a quiz made for this deck in the 'quiz' collection",
}


def _require_id(value, code: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(code)
    return value


class QuizReconciler:
    """
    Decide entre criar, estender ou reaproveitar o quiz de múltipla escolha de
    um deck, persiste o resultado e devolve um subconjunto embaralhado.

    As escritas (quiz, questões, marca d'água) acontecem antes da seleção;
    um EXCEEDS_AVAILABLE_CARDS no fim não desfaz nada.
    """

    def __init__(
        self,
        decks: DeckStore,
        quizzes: QuizStore,
        generator: GenerationClient,
        settings: Settings,
        rng: Optional[random.Random] = None,
    ):
        self.decks = decks
        self.quizzes = quizzes
        self.generator = generator
        self.settings = settings
        self.rng = rng

    async def reconcile(
        self,
        deck_id: str,
        user_id: str,
        num_of_quiz: Optional[int] = None,
    ) -> Tuple[QuizPath, QuizContent]:
        _require_id(deck_id, INVALID_DECK_ID)
        _require_id(user_id, INVALID_USER_ID)

        watermark = self.decks.get_deck_watermark(deck_id, "made_to_quiz_at")
        if not watermark.exists:
            raise NotFoundError(DECK_NOT_FOUND)

        quiz = self.quizzes.get_quiz_by_deck_and_type(deck_id, MULTIPLE_CHOICE)

        # Corte fixo: o que entrar depois dele fica para a próxima chamada
        cutoff = utcnow()
        after = quiz.updated_at if quiz else None
        new_flashcards = self.decks.get_flashcards_newer_than(deck_id, after, cutoff)

        path = decide_path(watermark.field_exists, quiz is not None, len(new_flashcards))
        if quiz is None and watermark.field_exists:
            logger.warning(f"⚠️ Deck {deck_id} tem made_to_quiz_at mas nenhum quiz; reconstruindo")
        logger.info(f"🧭 Deck {deck_id}: caminho {path.value} ({len(new_flashcards)} flashcards novos)")

        if quiz is None and not new_flashcards:
            raise InvalidRequestError(
                NO_FLASHCARDS,
                "Deck has no flashcards to build a quiz from",
                client_message=f"Quiz creation for deck with id:{deck_id} is unsuccessful",
            )

        quiz_id = quiz.id if quiz else None
        if path is not QuizPath.REUSE:
            questions = await self._generate_questions(new_flashcards)
            quiz_id = self._persist(deck_id, quiz_id, questions, cutoff)

        return path, self._select(quiz_id, num_of_quiz)

    async def _generate_questions(self, flashcards: Sequence[Flashcard]) -> List[GeneratedQuestion]:
        payload = json.dumps(
            [{"id": card.id, "term": card.term, "definition": card.definition} for card in flashcards],
            indent=2,
        )
        with staged_source(payload, "downloadQuiz", self.settings.TMP_DIR) as source_path:
            try:
                raw = await asyncio.wait_for(
                    self.generator.generate(
                        QuizGenerationResult,
                        quiz_prompt(len(flashcards)),
                        source_path,
                        tag=TAG_QUIZ,
                    ),
                    timeout=self.settings.REQUEST_TIMEOUT_SECONDS,
                )
            except UpstreamError:
                raise
            except asyncio.TimeoutError as e:
                raise UpstreamError(AI_GENERATION_FAILED, "Quiz generation deadline exceeded") from e
            except Exception as e:
                raise UpstreamError(AI_GENERATION_FAILED, str(e)) from e

        result = decode_result(QuizGenerationResult, raw)
        # Recusa explícita da IA ou lista vazia: nada é gravado nem carimbado
        if result.errorMessage or (flashcards and not result.quiz):
            raise UpstreamError(AI_GENERATION_FAILED, result.errorMessage or "AI returned no questions")
        logger.info(f"✅ {len(result.quiz)} questões geradas para {len(flashcards)} flashcards")
        return result.quiz

    def _persist(self, deck_id: str, quiz_id: Optional[str], questions: List[GeneratedQuestion], cutoff) -> str:
        if quiz_id is None:
            quiz_id, created = self.quizzes.create_quiz_if_absent(deck_id, MULTIPLE_CHOICE, questions, cutoff)
            if not created:
                # Perdemos a corrida: as questões geradas são descartadas
                return quiz_id
        else:
            self.quizzes.append_questions(quiz_id, questions, cutoff)

        self.decks.stamp_watermark(deck_id, cutoff)
        return quiz_id

    def _select(self, quiz_id: str, num_of_quiz: Optional[int]) -> QuizContent:
        quiz = self.quizzes.get_quiz_by_id(quiz_id, MULTIPLE_CHOICE)
        selected = shuffle_and_select(quiz.questions, num_of_quiz, self.rng)
        # Só a resposta é cortada; o quiz persistido continua inteiro
        return QuizContent(quizContent=quiz.model_copy(update={"questions": selected}))

    async def generate_quiz(
        self,
        deck_id: str,
        user_id: str,
        num_of_quiz: Optional[int] = None,
    ) -> ApiResponse:
        logger.info(f"📝 Pedido de quiz para o deck {deck_id} feito por {user_id}")
        try:
            path, content = await self.reconcile(deck_id, user_id, num_of_quiz)
        except Exception as e:
            return failure(e, user_id, "Quiz creation failed")

        return success(
            user_id,
            SUCCESS_MESSAGES[path].format(deck_id=deck_id),
            content.model_dump(mode="json"),
        )
