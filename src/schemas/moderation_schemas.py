from typing import Any, List, Optional
from pydantic import BaseModel, Field


class FlaggedCard(BaseModel):
    term: str
    definition: str
    reason: str


class ModerationVerdict(BaseModel):
    is_appropriate: bool
    moderation_decision: str
    # Sempre lista, nunca null
    flagged_cards: List[FlaggedCard] = Field(default_factory=list)


class ModerationResult(BaseModel):
    """Formato que pedimos para a IA em cada lote."""
    overall_verdict: ModerationVerdict


class ModerateDeckRequest(BaseModel):
    deckId: Optional[Any] = None
