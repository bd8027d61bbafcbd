from pydantic import BaseModel
from typing import Any, Optional


# Input
class GenerateDeckRequest(BaseModel):
    subject: Optional[str] = None
    topic: Optional[str] = None
    deckDescription: Optional[str] = None
    # Validado no service (10-50) para devolver o envelope 422 com código
    numberOfFlashcards: Optional[Any] = None
    title: Optional[str] = None
    description: Optional[str] = None
    coverPhoto: Optional[str] = None


# Envelope comum a todos os endpoints
class ApiResponse(BaseModel):
    status: int
    request_owner_id: Optional[str] = None
    message: str
    data: Optional[Any] = None
