from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

CHOICES_PER_QUESTION = 4


# --- Contrato com a IA (decodificação tipada, falha fechada) ---

class QuizChoice(BaseModel):
    text: str
    is_correct: bool


class GeneratedQuestion(BaseModel):
    question: str
    related_flashcard_id: Optional[str] = None
    choices: List[QuizChoice]

    @field_validator("choices")
    @classmethod
    def exactly_one_correct_of_four(cls, choices: List[QuizChoice]) -> List[QuizChoice]:
        if len(choices) != CHOICES_PER_QUESTION:
            raise ValueError(f"expected {CHOICES_PER_QUESTION} choices, got {len(choices)}")
        if sum(1 for c in choices if c.is_correct) != 1:
            raise ValueError("exactly one choice must be correct")
        return choices


class QuizGenerationResult(BaseModel):
    quiz: List[GeneratedQuestion]
    errorMessage: Optional[str] = None


# --- Entrada do endpoint ---

class GenerateQuizRequest(BaseModel):
    # Tudo opcional aqui: a validação devolve o envelope 400, não o 422 do FastAPI
    deckId: Optional[Any] = None
    numOfQuiz: Optional[Any] = None


# --- Saída ---

class QuestionView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    question: str
    related_flashcard_id: Optional[str] = None
    choices: List[QuizChoice]


class QuizView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    associated_deck_id: str
    quiz_type: str
    created_at: datetime
    updated_at: datetime
    questions: List[QuestionView] = Field(default_factory=list)


class QuizContent(BaseModel):
    quizContent: QuizView
