from typing import List
from pydantic import BaseModel


# O card como a IA devolve
class GeneratedFlashcard(BaseModel):
    term: str
    definition: str


class FlashcardGenerationResult(BaseModel):
    terms_and_definitions: List[GeneratedFlashcard]
