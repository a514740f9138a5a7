"""Migration Lambda handler.

Runs Alembic against the microsites database during deployment, after
the API Lambda is updated. The target revision defaults to ``head`` and
can be overridden with ``{"revision": "<rev>"}`` in the event.
"""

import json
import logging
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger()
logger.setLevel(logging.INFO)

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"
MIGRATION_TIMEOUT_SECONDS = 300


def _response(status_code: int, **body) -> dict:
    return {"statusCode": status_code, "body": json.dumps(body)}


def handler(event: dict, context) -> dict:
    """Upgrade the database schema.

    Args:
        event: Lambda event; optional ``revision`` (default ``head``)
        context: Lambda context

    Returns:
        API Gateway style response with the Alembic output
    """
    revision = (event or {}).get("revision", "head")
    logger.info(f"Upgrading database to revision {revision}")

    try:
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "-c", str(ALEMBIC_INI), "upgrade", revision],
            capture_output=True,
            text=True,
            timeout=MIGRATION_TIMEOUT_SECONDS,
            cwd=ALEMBIC_INI.parent,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Migration timed out after {MIGRATION_TIMEOUT_SECONDS}s")
        return _response(500, status="error", message="Migration timed out")

    if result.returncode != 0:
        logger.error(f"Migration failed: {result.stderr}")
        return _response(
            500,
            status="error",
            message="Migration failed",
            error=result.stderr,
            output=result.stdout,
        )

    logger.info(f"Migration completed: {result.stdout}")
    return _response(
        200,
        status="success",
        message=f"Database upgraded to {revision}",
        output=result.stdout,
    )
