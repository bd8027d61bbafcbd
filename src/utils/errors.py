from typing import Optional


class DeckAIError(Exception):
    """
    Erro de domínio com código estável (ex: "AI_GENERATION_FAILED").
    O código é o que vai na mensagem para o cliente; o status HTTP vem da subclasse.
    """

    status_code = 500

    def __init__(self, code: str, message: Optional[str] = None, client_message: Optional[str] = None):
        self.code = code
        self.message = message or code
        # Quando presente, substitui "<prefixo>: <código>" no envelope
        self.client_message = client_message
        super().__init__(self.message)


class InvalidRequestError(DeckAIError):
    # Entrada ruim do chamador, detectada antes de qualquer I/O
    status_code = 400


class NotFoundError(DeckAIError):
    status_code = 404


class CapacityError(DeckAIError):
    # Pediu mais questões do que existem (só depois das escritas)
    status_code = 400


class UpstreamError(DeckAIError):
    # Falha da IA ou resposta fora do schema. Nunca re-tentamos aqui.
    status_code = 502


INVALID_DECK_ID = "INVALID_DECK_ID"
INVALID_USER_ID = "INVALID_USER_ID"
DECK_NOT_FOUND = "DECK_NOT_FOUND"
NO_FLASHCARDS = "NO_FLASHCARDS"
NO_VALID_FLASHCARDS = "NO_VALID_FLASHCARDS"
QUIZ_NOT_FOUND = "QUIZ_NOT_FOUND"
EXCEEDS_AVAILABLE_CARDS = "EXCEEDS_AVAILABLE_CARDS"
AI_GENERATION_FAILED = "AI_GENERATION_FAILED"
INVALID_COUNT = "INVALID_COUNT"
