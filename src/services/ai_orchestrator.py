import asyncio
import time
from typing import Protocol, Type, TypeVar

import groq
from groq import AsyncGroq
from loguru import logger
from pydantic import BaseModel, ValidationError

from src.services.prompts import SYSTEM_PROMPT
from src.services.usage_service import UsageTracker
from src.utils.config import Settings
from src.utils.errors import UpstreamError, AI_GENERATION_FAILED

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Tags de contexto (também usadas no UsageLog)
TAG_QUIZ = "quiz"
TAG_MODERATION = "moderation"
TAG_FLASHCARDS = "flashcards"


def decode_result(schema: Type[SchemaT], raw) -> SchemaT:
    """Garante o schema na saída de qualquer gerador; falha fechada como UpstreamError."""
    if isinstance(raw, schema):
        return raw
    try:
        if isinstance(raw, (str, bytes)):
            return schema.model_validate_json(raw)
        return schema.model_validate(raw)
    except ValidationError as e:
        raise UpstreamError(AI_GENERATION_FAILED, f"Invalid AI response for {schema.__name__}") from e


class GenerationClient(Protocol):
    """Capacidade de geração injetada nos services (Groq em produção, mock nos testes)."""

    async def generate(
        self,
        schema: Type[SchemaT],
        instruction: str,
        source_path: str,
        *,
        tag: str,
    ) -> SchemaT:
        ...


class GroqGenerator:
    def __init__(self, client: AsyncGroq, usage: UsageTracker, settings: Settings):
        self.client = client
        self.usage = usage
        self.settings = settings
        self.model_config = {
            TAG_QUIZ: settings.QUIZ_MODEL,
            TAG_MODERATION: settings.MODERATION_MODEL,
            TAG_FLASHCARDS: settings.FLASHCARD_MODEL,
        }

    # ---------------------------------------------------------
    # 1. RESOLUÇÃO DE MODELO (Smart Throttling)
    # ---------------------------------------------------------

    def resolve_model(self, tag: str) -> str:
        if tag != TAG_QUIZ:
            return self.model_config.get(tag, self.settings.QUIZ_MODEL_ECONOMY)

        # Quiz: modelo principal até acabar a cota do dia
        primary = self.settings.QUIZ_MODEL
        if self.usage.check_model_usage_today(primary) < self.settings.PRIMARY_MODEL_DAILY_TOKEN_LIMIT:
            return primary
        logger.info(f"💸 Cota diária do {primary} esgotada, usando {self.settings.QUIZ_MODEL_ECONOMY}")
        return self.settings.QUIZ_MODEL_ECONOMY

    # ---------------------------------------------------------
    # 2. CHAMADA (um retry só para 429)
    # ---------------------------------------------------------

    async def _complete(self, model: str, messages: list):
        for attempt in range(2):
            try:
                return await asyncio.wait_for(
                    self.client.chat.completions.create(
                        model=model,
                        messages=messages,
                        response_format={"type": "json_object"},
                    ),
                    timeout=self.settings.GENERATION_TIMEOUT_SECONDS,
                )
            except groq.RateLimitError as e:
                if attempt == 0:
                    wait = self.settings.RATE_LIMIT_RETRY_SECONDS
                    logger.warning(f"⏳ Rate Limit no {model}. Esperando {wait}s antes de tentar de novo...")
                    await asyncio.sleep(wait)
                    continue
                raise UpstreamError(AI_GENERATION_FAILED, f"Rate limited by {model}") from e
            except asyncio.TimeoutError as e:
                raise UpstreamError(AI_GENERATION_FAILED, f"Timeout waiting for {model}") from e
            except groq.APIError as e:
                raise UpstreamError(AI_GENERATION_FAILED, f"{model} failed: {e}") from e

    # ---------------------------------------------------------
    # 3. GERAÇÃO + DECODIFICAÇÃO TIPADA
    # ---------------------------------------------------------

    async def generate(
        self,
        schema: Type[SchemaT],
        instruction: str,
        source_path: str,
        *,
        tag: str,
    ) -> SchemaT:
        model = self.resolve_model(tag)
        with open(source_path, encoding="utf-8") as handle:
            source = handle.read()

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"{instruction}\n\n### Uploaded file ###\n{source}"},
        ]

        logger.info(f"🚀 [{tag}] Enviando {len(source)} chars para {model}...")
        start_time = time.time()
        completion = await self._complete(model, messages)

        if completion.usage:
            usage_dict = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens,
            }
            self.usage.log_usage(model, usage_dict, time.time() - start_time, tag)

        content = completion.choices[0].message.content or ""
        try:
            return decode_result(schema, content)
        except UpstreamError:
            logger.error(f"❌ [{tag}] Resposta fora do schema {schema.__name__}")
            raise
