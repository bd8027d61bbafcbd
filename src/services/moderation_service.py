from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Union

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from src.db.deck_store import DeckStore
from src.db.publish_request_store import PublishRequestStore
from src.models.flashcard import Flashcard
from src.schemas.deck_schemas import ApiResponse
from src.schemas.moderation_schemas import FlaggedCard, ModerationResult, ModerationVerdict
from src.services.ai_orchestrator import GenerationClient, TAG_MODERATION, decode_result
from src.services.prompts import moderation_prompt
from src.services.responses import failure, success
from src.utils.config import Settings
from src.utils.errors import (
    InvalidRequestError,
    NotFoundError,
    DECK_NOT_FOUND,
    INVALID_DECK_ID,
    INVALID_USER_ID,
    NO_VALID_FLASHCARDS,
)
from src.utils.tempfiles import staged_source

DEFAULT_DECISION = "Content is appropriate"


# ---------------------------------------------------------
# 1. AGREGAÇÃO DOS VEREDITOS POR LOTE
# ---------------------------------------------------------

def _as_verdict(response: Any) -> Optional[ModerationVerdict]:
    if isinstance(response, ModerationResult):
        return response.overall_verdict
    if isinstance(response, ModerationVerdict):
        return response

    verdict = response.get("overall_verdict") if isinstance(response, dict) else None
    if not isinstance(verdict, dict) or not isinstance(verdict.get("is_appropriate"), bool):
        logger.warning("⚠️ Lote de moderação sem overall_verdict válido, ignorado")
        return None

    flagged = []
    if isinstance(verdict.get("flagged_cards"), list):
        try:
            flagged = [FlaggedCard.model_validate(card) for card in verdict["flagged_cards"]]
        except ValidationError:
            logger.warning("⚠️ flagged_cards malformado, ignorado")
            flagged = []

    return ModerationVerdict(
        is_appropriate=verdict["is_appropriate"],
        moderation_decision=str(verdict.get("moderation_decision") or ""),
        flagged_cards=flagged,
    )


def aggregate_verdicts(responses: Iterable[Union[ModerationResult, ModerationVerdict, dict]]) -> ModerationVerdict:
    """
    Junta os vereditos dos lotes num só.

    Qualquer lote inapropriado torna o resultado inapropriado. A decisão fica
    com o ÚLTIMO lote inapropriado (sobrescreve, não concatena) e os cards
    sinalizados são concatenados na ordem dos lotes. Zero lotes = apropriado.
    """
    is_appropriate = True
    decision = DEFAULT_DECISION
    flagged: List[FlaggedCard] = []

    for response in responses:
        verdict = _as_verdict(response)
        if verdict is None or verdict.is_appropriate:
            continue
        is_appropriate = False
        decision = verdict.moderation_decision
        if verdict.flagged_cards:
            flagged.extend(verdict.flagged_cards)

    return ModerationVerdict(
        is_appropriate=is_appropriate,
        moderation_decision=decision,
        flagged_cards=flagged,
    )


# ---------------------------------------------------------
# 2. O ORQUESTRADOR DE MODERAÇÃO
# ---------------------------------------------------------

@dataclass
class ModerationOutcome:
    verdict: ModerationVerdict
    publish_request_id: Optional[str]


def format_flashcards(flashcards: Sequence[Flashcard]) -> str:
    return "\n\n".join(f"Definition: {card.definition}\nTerm: {card.term}" for card in flashcards)


def chunk(items: Sequence[Flashcard], size: int) -> List[Sequence[Flashcard]]:
    if size <= 0:
        return [items]
    return [items[i:i + size] for i in range(0, len(items), size)]


class ModerationOrchestrator:
    def __init__(
        self,
        decks: DeckStore,
        publish_requests: PublishRequestStore,
        generator: GenerationClient,
        settings: Settings,
    ):
        self.decks = decks
        self.publish_requests = publish_requests
        self.generator = generator
        self.settings = settings

    async def moderate(self, deck_id: str, user_id: str) -> ModerationOutcome:
        if not isinstance(deck_id, str) or not deck_id.strip():
            raise InvalidRequestError(INVALID_DECK_ID)
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidRequestError(INVALID_USER_ID)

        if self.decks.get_deck(deck_id) is None:
            raise NotFoundError(DECK_NOT_FOUND)
        flashcards = self.decks.get_flashcards(deck_id)
        if not flashcards:
            raise NotFoundError(NO_VALID_FLASHCARDS)

        results = []
        for batch in chunk(flashcards, self.settings.MODERATION_BATCH_SIZE):
            with staged_source(format_flashcards(batch), "moderateDeck", self.settings.TMP_DIR) as source_path:
                raw = await self.generator.generate(
                    ModerationResult,
                    moderation_prompt(),
                    source_path,
                    tag=TAG_MODERATION,
                )
            results.append(decode_result(ModerationResult, raw))

        # Um lote só (produção): devolvemos o veredito cru da IA
        verdict = results[0].overall_verdict if len(results) == 1 else aggregate_verdicts(results)
        logger.info(
            f"🛡️ Deck {deck_id}: is_appropriate={verdict.is_appropriate}, "
            f"{len(verdict.flagged_cards)} card(s) sinalizado(s)"
        )

        return ModerationOutcome(verdict=verdict, publish_request_id=self._record(user_id, deck_id, verdict))

    def _record(self, user_id: str, deck_id: str, verdict: ModerationVerdict) -> Optional[str]:
        # A resposta não depende do pedido de publicação; falha aqui só vai para o log
        try:
            request_id = self.publish_requests.create(user_id, deck_id, verdict)
        except SQLAlchemyError:
            logger.exception(f"❌ Falha ao registrar publish request do deck {deck_id}")
            return None
        logger.info(f"📨 Publish request {request_id} registrado para o deck {deck_id}")
        return request_id

    async def review_deck(self, deck_id: str, user_id: str) -> ApiResponse:
        try:
            outcome = await self.moderate(deck_id, user_id)
        except Exception as e:
            # 400/404 são expostos; falha da IA é erro de servidor aqui
            return failure(e, user_id, "Moderation review failed", exposed_statuses={400, 404})

        return success(
            user_id,
            "Moderation review successful",
            {"overall_verdict": outcome.verdict.model_dump(mode="json")},
        )
