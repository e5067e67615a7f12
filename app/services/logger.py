"""Structured logging for the research service, on top of loguru.

Importing this module configures the sinks once. Every helper writes a single
line of the form ``TAG: {payload}`` so runs can be grepped by tag (``EVENT``,
``LLM_CALL``, ``RESEARCH_STEP``, ``DB_OPERATION``).
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from app.config import settings

LOG_DIR = Path("logs")

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> {message}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} {level: <8} {name}:{function}:{line} {message}"

# stdlib loggers of the HTTP stack and SDKs we call
NOISY_LOGGERS = (
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "openai",
    "supabase",
    "postgrest",
    "gotrue",
    "pypdf",
)

_configured = False


def configure(level: Optional[str] = None) -> None:
    global _configured
    if _configured:
        return

    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=(level or settings.app_log_level).upper(),
        colorize=True,
    )

    LOG_DIR.mkdir(exist_ok=True)
    logger.add(
        LOG_DIR / "research_{time:YYYY-MM-DD}.log",
        format=FILE_FORMAT,
        level="DEBUG",
        rotation="00:00",
        retention="7 days",
        compression="zip",
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(settings.noisy_log_level.upper())
    _configured = True


configure()


def _write(level: str, tag: str, **fields: Any) -> None:
    payload = {"timestamp": datetime.now(timezone.utc).isoformat(), **fields}
    logger.opt(depth=2).log(level, f"{tag}: {payload}")


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """One completion request to the generation backend, with token usage."""
    _write(
        "ERROR" if error else "INFO",
        "LLM_CALL_FAILED" if error else "LLM_CALL",
        model=model,
        caller=caller,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        duration_ms=duration_ms,
        status=status,
        error=error,
    )


def log_research_step(strategy: str, stage: str, message: str, data: Optional[dict] = None) -> None:
    _write("DEBUG", "RESEARCH_STEP", strategy=strategy, stage=stage, message=message, data=data)


def log_db_operation(
    operation: str,
    table: str,
    status: str,
    details: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    _write(
        "ERROR" if error else "INFO",
        "DB_OPERATION_FAILED" if error else "DB_OPERATION",
        operation=operation,
        table=table,
        status=status,
        details=details,
        error=error,
    )


def log_event(event_type: str, message: str, level: str = "INFO", **kwargs: Any) -> None:
    """Log a named service event; extra keyword arguments go into the payload."""
    _write(level, "EVENT", event_type=event_type, message=message, **kwargs)
