from datetime import datetime, time, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select, func

from src.models.usage_log import UsageLog
from src.utils.clock import utcnow


def _start_of_today() -> datetime:
    return datetime.combine(utcnow().date(), time.min, tzinfo=timezone.utc)


def _model_row(model_id: str, requests: int, tokens: Optional[int], seconds: Optional[float]) -> Dict[str, Any]:
    return {
        "model": model_id,
        "requests_today": requests,
        "tokens_today": tokens or 0,
        "avg_latency": round((seconds or 0) / requests, 2) if requests else 0,
    }


class UsageTracker:
    """Contabiliza tokens por modelo (para o relatório e para o throttling diário)."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def log_usage(self, model_id: str, usage_data: Optional[Dict[str, int]], time_taken: float, tag: str) -> None:
        # Chamada sem usage (ex: resposta vazia da Groq) não conta
        if not usage_data:
            return

        entry = UsageLog(
            model_id=model_id,
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
            time_taken_seconds=time_taken,
            context_tag=tag,
        )
        with Session(self.engine) as session:
            session.add(entry)
            session.commit()

    def get_daily_usage_stats(self) -> Dict[str, Any]:
        since = _start_of_today()
        statement = (
            select(
                UsageLog.model_id,
                func.count(UsageLog.id),
                func.sum(UsageLog.total_tokens),
                func.sum(UsageLog.time_taken_seconds),
            )
            .where(UsageLog.timestamp >= since)
            .group_by(UsageLog.model_id)
        )
        with Session(self.engine) as session:
            by_model: List[Dict[str, Any]] = [_model_row(*row) for row in session.exec(statement).all()]

        return {
            "date": since.date().isoformat(),
            "summary": {
                "total_requests": sum(row["requests_today"] for row in by_model),
                "total_tokens": sum(row["tokens_today"] for row in by_model),
            },
            "by_model": by_model,
        }

    def check_model_usage_today(self, model_id: str) -> int:
        """Tokens gastos hoje (UTC) pelo modelo; base do throttling do quiz."""
        statement = (
            select(func.coalesce(func.sum(UsageLog.total_tokens), 0))
            .where(UsageLog.model_id == model_id)
            .where(UsageLog.timestamp >= _start_of_today())
        )
        with Session(self.engine) as session:
            return int(session.exec(statement).one())
