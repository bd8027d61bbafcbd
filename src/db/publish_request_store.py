from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from src.models.publish_request import PublishRequest
from src.schemas.moderation_schemas import ModerationVerdict


class PublishRequestStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    def create(self, user_id: str, deck_id: str, verdict: ModerationVerdict) -> str:
        # Sem deduplicação: cada moderação gera um pedido novo
        request = PublishRequest(
            user_id=user_id,
            deck_id=deck_id,
            ai_verdict=verdict.model_dump(),
        )
        request_id = request.id
        with Session(self.engine) as session:
            session.add(request)
            session.commit()
        return request_id

    def get_by_deck_id(self, deck_id: str) -> Optional[PublishRequest]:
        """Pedido mais recente do deck, ou None."""
        statement = (
            select(PublishRequest)
            .where(PublishRequest.deck_id == deck_id)
            .order_by(PublishRequest.requested_at.desc())
        )
        with Session(self.engine) as session:
            request = session.exec(statement).first()
            if request is not None:
                session.expunge(request)
        return request
