import math
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.engine import Engine

from src.db.deck_store import DeckStore
from src.db.publish_request_store import PublishRequestStore
from src.db.quiz_store import QuizStore
from src.db.session import build_engine, init_db
from src.schemas.deck_schemas import ApiResponse, GenerateDeckRequest
from src.schemas.moderation_schemas import ModerateDeckRequest
from src.schemas.quiz_schemas import GenerateQuizRequest
from src.services.ai_orchestrator import GenerationClient, GroqGenerator
from src.services.deck_service import DeckGenerationService
from src.services.moderation_service import ModerationOrchestrator
from src.services.quiz_service import QuizReconciler
from src.services.usage_service import UsageTracker
from src.utils.config import Settings, settings as default_settings
from src.utils.groq_client import build_groq_client
from src.utils.logger import setup_logging

MIN_QUIZ_SIZE = 5
MAX_QUIZ_SIZE = 50


@dataclass
class Services:
    quizzes: QuizReconciler
    moderation: ModerationOrchestrator
    decks: DeckGenerationService
    usage: UsageTracker


def build_services(engine: Engine, generator: GenerationClient, usage: UsageTracker, settings: Settings) -> Services:
    deck_store = DeckStore(engine)
    return Services(
        quizzes=QuizReconciler(deck_store, QuizStore(engine), generator, settings),
        moderation=ModerationOrchestrator(deck_store, PublishRequestStore(engine), generator, settings),
        decks=DeckGenerationService(deck_store, generator, settings),
        usage=usage,
    )


def create_app(settings: Settings = default_settings, services: Optional[Services] = None) -> FastAPI:
    # Ciclo de vida do engine e do cliente Groq pertence ao processo, não aos services
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        if services is not None:
            app.state.services = services
            yield
            return

        engine = build_engine(settings.DATABASE_URL)
        init_db(engine)
        groq_client = build_groq_client(settings.GROQ_API_KEY)
        usage = UsageTracker(engine)
        generator = GroqGenerator(groq_client, usage, settings)
        app.state.services = build_services(engine, generator, usage, settings)
        logger.info("🚀 Deck AI API pronta")
        try:
            yield
        finally:
            await groq_client.close()
            engine.dispose()

    app = FastAPI(lifespan=lifespan)
    register_routes(app)
    return app


def get_services(request: Request) -> Services:
    return request.app.state.services


def send(result: ApiResponse) -> JSONResponse:
    # O status HTTP é sempre o status do envelope
    return JSONResponse(status_code=result.status, content=result.model_dump(mode="json"))


def parse_quiz_limit(value: Any) -> Optional[int]:
    """None se ausente; levanta ValueError se não for inteiro em [5, 50]."""
    if value is None or value == "":
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not math.isfinite(value)):
        raise ValueError(value)
    limit = int(value)
    if isinstance(value, float) and value != limit:
        raise ValueError(value)
    if limit < MIN_QUIZ_SIZE or limit > MAX_QUIZ_SIZE:
        raise ValueError(value)
    return limit


def register_routes(app: FastAPI) -> None:
    @app.get("/")
    def read_root():
        return {"status": "Deck AI API is running 🚀"}

    @app.get("/v2/deck/hi")
    def say_hi():
        return {"message": "Hi! the server is active"}

    @app.post("/v2/deck/generate/quiz", response_model=ApiResponse)
    async def generate_quiz(
        body: GenerateQuizRequest,
        x_user_id: Optional[str] = Header(default=None),
        services: Services = Depends(get_services),
    ):
        if not isinstance(body.deckId, str) or not body.deckId.strip():
            return send(ApiResponse(
                status=400,
                request_owner_id=x_user_id,
                message="The parameter 'deckId' can't be empty or null",
            ))
        try:
            limit = parse_quiz_limit(body.numOfQuiz)
        except (TypeError, ValueError, OverflowError):
            return send(ApiResponse(
                status=400,
                request_owner_id=x_user_id,
                message=(
                    f"Invalid limit value. It must be a number between {MIN_QUIZ_SIZE} and {MAX_QUIZ_SIZE}."
                ),
            ))

        return send(await services.quizzes.generate_quiz(body.deckId, x_user_id, limit))

    @app.post("/v2/deck/moderate", response_model=ApiResponse)
    async def moderate_deck(
        body: ModerateDeckRequest,
        x_user_id: Optional[str] = Header(default=None),
        services: Services = Depends(get_services),
    ):
        if not isinstance(body.deckId, str) or not body.deckId.strip():
            return send(ApiResponse(
                status=400,
                request_owner_id=x_user_id,
                message="The parameter 'deckId' can't be empty or null",
            ))
        return send(await services.moderation.review_deck(body.deckId, x_user_id))

    @app.post("/v2/deck/generate/flashcards", response_model=ApiResponse)
    async def generate_deck(
        body: GenerateDeckRequest,
        x_user_id: Optional[str] = Header(default=None),
        services: Services = Depends(get_services),
    ):
        return send(await services.decks.generate_deck(body, x_user_id))

    @app.get("/api/usage")
    def read_usage(services: Services = Depends(get_services)):
        """
        Retorna o consumo de tokens e requisições do dia atual.
        """
        return services.usage.get_daily_usage_stats()


app = create_app()
