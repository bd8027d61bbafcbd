from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from src.models.deck import DEFAULT_COVER_PHOTO, Deck
from src.models.flashcard import Flashcard
from src.utils.clock import as_utc, utcnow
from src.utils.errors import NotFoundError, DECK_NOT_FOUND


@dataclass
class WatermarkInfo:
    exists: bool
    field_exists: bool
    value: Optional[datetime] = None


def _normalized(deck: Deck) -> Deck:
    deck.created_at = as_utc(deck.created_at)
    deck.made_to_quiz_at = as_utc(deck.made_to_quiz_at)
    return deck


def _normalized_card(card: Flashcard) -> Flashcard:
    card.created_at = as_utc(card.created_at)
    return card


class DeckStore:
    """Leitura/escrita de decks e flashcards. Cada método é uma transação curta."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get_deck(self, deck_id: str) -> Optional[Deck]:
        with Session(self.engine) as session:
            deck = session.get(Deck, deck_id)
            if deck is None or deck.is_deleted:
                return None
            session.expunge(deck)
        return _normalized(deck)

    def get_deck_watermark(self, deck_id: str, field_name: str = "made_to_quiz_at") -> WatermarkInfo:
        deck = self.get_deck(deck_id)
        if deck is None:
            return WatermarkInfo(exists=False, field_exists=False)
        value = getattr(deck, field_name, None)
        return WatermarkInfo(exists=True, field_exists=value is not None, value=value)

    def update_deck(self, deck_id: str, patch: Dict[str, Any]) -> None:
        with Session(self.engine) as session:
            deck = session.get(Deck, deck_id)
            if deck is None:
                raise NotFoundError(DECK_NOT_FOUND)
            for field_name, value in patch.items():
                if field_name not in Deck.model_fields:
                    raise ValueError(f"Deck has no field '{field_name}'")
                setattr(deck, field_name, value)
            session.add(deck)
            session.commit()

    def stamp_watermark(self, deck_id: str, at: datetime) -> datetime:
        """
        Grava made_to_quiz_at garantindo que ela sempre cresce
        (relógio igual ou para trás vira +1µs sobre o valor anterior).
        """
        at = as_utc(at)
        with Session(self.engine) as session:
            deck = session.get(Deck, deck_id)
            if deck is None:
                raise NotFoundError(DECK_NOT_FOUND)
            previous = as_utc(deck.made_to_quiz_at)
            if previous is not None and at <= previous:
                at = previous + timedelta(microseconds=1)
            deck.made_to_quiz_at = at
            session.add(deck)
            session.commit()
        return at

    def get_flashcards(self, deck_id: str) -> List[Flashcard]:
        return self.get_flashcards_newer_than(deck_id, None)

    def get_flashcards_newer_than(
        self,
        deck_id: str,
        after: Optional[datetime],
        until: Optional[datetime] = None,
    ) -> List[Flashcard]:
        """Flashcards com after < created_at <= until (limites opcionais)."""
        statement = select(Flashcard).where(Flashcard.deck_id == deck_id)
        if after is not None:
            statement = statement.where(Flashcard.created_at > as_utc(after))
        if until is not None:
            statement = statement.where(Flashcard.created_at <= as_utc(until))
        statement = statement.order_by(Flashcard.created_at, Flashcard.id)

        with Session(self.engine) as session:
            cards = session.exec(statement).all()
            for card in cards:
                session.expunge(card)
        return [_normalized_card(card) for card in cards]

    def create_deck(
        self,
        owner_id: str,
        title: str,
        description: Optional[str] = None,
        cover_photo: Optional[str] = None,
    ) -> str:
        deck = Deck(
            owner_id=owner_id,
            title=title,
            description=description,
            cover_photo=cover_photo or DEFAULT_COVER_PHOTO,
        )
        deck_id = deck.id
        with Session(self.engine) as session:
            session.add(deck)
            session.commit()
        return deck_id

    def add_flashcards(
        self,
        deck_id: str,
        cards: Iterable[Dict[str, str]],
        created_at: Optional[datetime] = None,
    ) -> List[str]:
        """Acrescenta cards ({"term", "definition"}) ao deck; nunca altera os existentes."""
        created_at = as_utc(created_at) or utcnow()
        ids = []
        with Session(self.engine) as session:
            deck = session.get(Deck, deck_id)
            if deck is None:
                raise NotFoundError(DECK_NOT_FOUND)
            for card in cards:
                flashcard = Flashcard(
                    deck_id=deck_id,
                    term=card["term"],
                    definition=card["definition"],
                    created_at=created_at,
                )
                ids.append(flashcard.id)
                session.add(flashcard)
            deck.flashcard_count += len(ids)
            session.add(deck)
            session.commit()
        return ids
