from typing import Any, Collection, Optional

from loguru import logger

from src.schemas.deck_schemas import ApiResponse
from src.utils.errors import DeckAIError

SERVER_ERROR_MESSAGE = "A server-side error has occurred"


def success(user_id: Optional[str], message: str, data: Any = None) -> ApiResponse:
    return ApiResponse(status=200, request_owner_id=user_id, message=message, data=data)


def failure(
    error: Exception,
    user_id: Optional[str],
    prefix: str,
    exposed_statuses: Optional[Collection[int]] = None,
) -> ApiResponse:
    """
    Converte qualquer exceção no envelope. Erros de domínio viram o status da
    classe (se estiver em `exposed_statuses`); o resto é 500 com mensagem genérica.
    Deve ser chamada dentro do `except` para o traceback ir para o log.
    """
    if isinstance(error, DeckAIError) and (
        exposed_statuses is None or error.status_code in exposed_statuses
    ):
        logger.warning(f"⚠️ {prefix}: {error.code} ({error.message})")
        return ApiResponse(
            status=error.status_code,
            request_owner_id=user_id,
            message=error.client_message or f"{prefix}: {error.code}",
            data=None,
        )

    logger.exception(f"❌ Server-side error: {error}")
    return ApiResponse(status=500, request_owner_id=user_id, message=SERVER_ERROR_MESSAGE, data=None)
