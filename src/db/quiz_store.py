from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from loguru import logger
from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from src.models.quiz import MULTIPLE_CHOICE, Quiz, QuizQuestion
from src.schemas.quiz_schemas import GeneratedQuestion, QuestionView, QuizView
from src.utils.clock import as_utc, utcnow
from src.utils.errors import NotFoundError, QUIZ_NOT_FOUND


def _normalized(quiz: Quiz) -> Quiz:
    quiz.created_at = as_utc(quiz.created_at)
    quiz.updated_at = as_utc(quiz.updated_at)
    return quiz


class QuizStore:
    """
    Persistência dos quizzes e das questões.

    As questões só são acrescentadas (position crescente); nada aqui
    substitui ou apaga questões existentes.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def get_quiz_by_deck_and_type(self, deck_id: str, quiz_type: str = MULTIPLE_CHOICE) -> Optional[Quiz]:
        statement = (
            select(Quiz)
            .where(Quiz.associated_deck_id == deck_id)
            .where(Quiz.quiz_type == quiz_type)
            .where(Quiz.is_deleted == False)  # noqa: E712
        )
        with Session(self.engine) as session:
            quiz = session.exec(statement).first()
            if quiz is None:
                return None
            session.expunge(quiz)
        return _normalized(quiz)

    def create_quiz(self, deck_id: str, quiz_type: str = MULTIPLE_CHOICE, at: Optional[datetime] = None) -> str:
        """Insert simples; levanta IntegrityError se já existe quiz vivo para o deck."""
        quiz_id, _ = self._insert(deck_id, quiz_type, [], at or utcnow())
        return quiz_id

    def create_quiz_if_absent(
        self,
        deck_id: str,
        quiz_type: str,
        questions: Sequence[GeneratedQuestion],
        at: datetime,
    ) -> Tuple[str, bool]:
        """
        Cria o quiz já com as questões numa única transação.
        Retorna (quiz_id, created). Se outro request criou antes (índice único),
        nada é escrito e devolvemos o quiz existente com created=False.
        """
        try:
            return self._insert(deck_id, quiz_type, questions, at)
        except IntegrityError:
            existing = self.get_quiz_by_deck_and_type(deck_id, quiz_type)
            if existing is None:
                raise
            logger.warning(f"⚠️ Quiz do deck {deck_id} já foi criado por outro request ({existing.id})")
            return existing.id, False

    def _insert(
        self,
        deck_id: str,
        quiz_type: str,
        questions: Sequence[GeneratedQuestion],
        at: datetime,
    ) -> Tuple[str, bool]:
        quiz = Quiz(associated_deck_id=deck_id, quiz_type=quiz_type, created_at=at, updated_at=at)
        quiz_id = quiz.id
        with Session(self.engine) as session:
            session.add(quiz)
            session.flush()
            self._add_questions(session, quiz_id, questions, start=0)
            session.commit()
        return quiz_id, True

    def append_questions(self, quiz_id: str, questions: Sequence[GeneratedQuestion], at: datetime) -> int:
        """Acrescenta ao fim do quiz e move updated_at para `at`."""
        with Session(self.engine) as session:
            quiz = session.get(Quiz, quiz_id)
            if quiz is None or quiz.is_deleted:
                raise NotFoundError(QUIZ_NOT_FOUND)

            last_position = session.exec(
                select(func.max(QuizQuestion.position)).where(QuizQuestion.quiz_id == quiz_id)
            ).one()
            start = 0 if last_position is None else last_position + 1
            self._add_questions(session, quiz_id, questions, start=start)

            quiz.updated_at = at
            session.add(quiz)
            session.commit()
        return len(questions)

    @staticmethod
    def _add_questions(session: Session, quiz_id: str, questions: Sequence[GeneratedQuestion], start: int) -> None:
        for offset, generated in enumerate(questions):
            session.add(
                QuizQuestion(
                    quiz_id=quiz_id,
                    position=start + offset,
                    question=generated.question,
                    related_flashcard_id=generated.related_flashcard_id,
                    choices=[choice.model_dump() for choice in generated.choices],
                )
            )

    def get_quiz_by_id(self, quiz_id: str, quiz_type: str = MULTIPLE_CHOICE) -> QuizView:
        with Session(self.engine) as session:
            quiz = session.get(Quiz, quiz_id)
            if quiz is None or quiz.is_deleted or quiz.quiz_type != quiz_type:
                raise NotFoundError(QUIZ_NOT_FOUND)

            rows: List[QuizQuestion] = session.exec(
                select(QuizQuestion)
                .where(QuizQuestion.quiz_id == quiz_id)
                .order_by(QuizQuestion.position)
            ).all()

            return QuizView(
                id=quiz.id,
                associated_deck_id=quiz.associated_deck_id,
                quiz_type=quiz.quiz_type,
                created_at=as_utc(quiz.created_at),
                updated_at=as_utc(quiz.updated_at),
                questions=[QuestionView.model_validate(row) for row in rows],
            )
