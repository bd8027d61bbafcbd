import os
import tempfile
from contextlib import contextmanager
from typing import Iterator

from loguru import logger


@contextmanager
def staged_source(payload: str, prefix: str, tmp_dir: str = "/tmp") -> Iterator[str]:
    """
    Grava o material enviado para a IA num arquivo temporário e garante a
    remoção em qualquer saída (sucesso, erro de validação ou exceção).
    """
    os.makedirs(tmp_dir, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix=f"{prefix}-", suffix=".txt", dir=tmp_dir)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        else:
            logger.debug(f"🧹 Arquivo temporário removido: {path}")
