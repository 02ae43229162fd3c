"""
Scheduled-trigger entrypoint.

``handler(event, context)`` is what the external scheduler invokes.  It
resolves configuration, runs one recurring pass and answers with an
HTTP-style envelope::

    {"statusCode": 200, "body": "<json summary>"}

Status 200 covers completed and partially completed runs (item errors are
counted in the body).  Status 500 means the run never got to process
items: bad configuration or unreachable storage.

An optional ``event["as_of"]`` (ISO-8601) overrides the run time.
"""

from __future__ import annotations

import json
import time
from datetime import datetime
from typing import Any

from budget_kernel.domain.clock import as_utc
from budget_kernel.exceptions import BudgetKernelError
from budget_kernel.logging_config import configure_logging, get_logger

from budget_batch.orchestrator import RecurringOrchestrator
from budget_config import get_run_config

logger = get_logger("batch.handler")


def _event_as_of(event: Any) -> datetime | None:
    if not isinstance(event, dict) or not event.get("as_of"):
        return None
    return as_utc(datetime.fromisoformat(event["as_of"]))


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {"statusCode": status_code, "body": json.dumps(body, default=str)}


def handler(
    event: Any = None,
    context: Any = None,
    orchestrator: RecurringOrchestrator | None = None,
) -> dict[str, Any]:
    """Run the recurring pass for a scheduled trigger."""
    start_time = time.monotonic()
    correlation_id = getattr(context, "aws_request_id", None)

    try:
        if orchestrator is None:
            config = get_run_config()
            configure_logging(level=config.log_level)
            orchestrator = RecurringOrchestrator.from_config(config)
        summary = orchestrator.run(
            as_of=_event_as_of(event), correlation_id=correlation_id,
        )
    except Exception as exc:
        logger.exception("handler_failed")
        return _response(500, {
            "message": "Recurring run failed",
            "error": str(exc),
            "error_code": (
                exc.code if isinstance(exc, BudgetKernelError) else "UNHANDLED_EXCEPTION"
            ),
            "execution_time_ms": int((time.monotonic() - start_time) * 1000),
        })

    if summary.error_message is not None:
        return _response(500, {
            "message": "Recurring run failed",
            "error": summary.error_message,
            "summary": summary.to_dict(),
        })

    return _response(200, {
        "message": "Recurring run completed",
        "summary": summary.to_dict(),
    })
