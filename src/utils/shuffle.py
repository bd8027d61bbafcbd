import math
import random
from typing import List, Optional, Sequence, TypeVar

from src.utils.errors import CapacityError, InvalidRequestError, EXCEEDS_AVAILABLE_CARDS, INVALID_COUNT

T = TypeVar("T")

# Fração do quiz devolvida quando o cliente não pede uma quantidade
DEFAULT_SELECTION_RATIO = 0.5


def fisher_yates_shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Embaralha uma cópia de `items` com Fisher–Yates.
    Com um random.Random semeado o resultado é reproduzível (testes);
    sem rng usamos SystemRandom (produção).
    """
    rng = rng or random.SystemRandom()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def select_subset(shuffled: Sequence[T], requested: Optional[int] = None) -> List[T]:
    """Corta os primeiros `requested` itens de uma sequência já embaralhada."""
    if requested is None:
        requested = math.ceil(DEFAULT_SELECTION_RATIO * len(shuffled))

    if requested < 0:
        raise InvalidRequestError(INVALID_COUNT, "Requested count can't be negative.")

    if requested > len(shuffled):
        raise CapacityError(
            EXCEEDS_AVAILABLE_CARDS,
            "Requested number of flashcards exceeds available cards.",
        )

    return list(shuffled[:requested])


def shuffle_and_select(
    items: Sequence[T],
    requested: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[T]:
    return select_subset(fisher_yates_shuffle(items, rng), requested)
