from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

# IMPORTANTE: Importe os modelos aqui para registrá-los no SQLModel
from src.models.deck import Deck
from src.models.flashcard import Flashcard
from src.models.quiz import Quiz, QuizQuestion
from src.models.publish_request import PublishRequest
from src.models.usage_log import UsageLog


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Cria o engine. Quem chama (lifespan ou testes) é dono do ciclo de vida."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # Banco em memória: todas as sessões precisam da mesma conexão
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
