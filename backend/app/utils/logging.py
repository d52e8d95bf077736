"""Structured logging for external model attempts."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class ExplainerAttemptLogger:
    """Structured logger for explainer attempts."""

    def log_attempt(
        self,
        attempt: int,
        outcome: str,
        latency_ms: float,
        prompt_digest: str,
        cache_hit: bool = False,
        error_reason: str | None = None,
    ) -> None:
        """Log one external model attempt with structured data."""
        log_data: dict[str, Any] = {
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "prompt_digest": prompt_digest[:12],
            "cache_hit": cache_hit,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Explainer attempt {attempt} - {outcome}"

        if outcome in ("success", "cache_hit"):
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
