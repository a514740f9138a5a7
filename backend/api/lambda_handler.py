"""AWS Lambda entry point for the QR Microsites API.

Mangum translates API Gateway events into ASGI calls on ``api.main.app``.
The ASGI lifespan is off, so queued autosave edits are only written by
their own timers or an explicit flush within the invocation.
"""

import logging

from mangum import Mangum

from api.main import app

# The Lambda runtime leaves the root logger at WARNING; raise it so the
# INFO messages from services (orders placed, scans, autosave) reach CloudWatch.
logging.getLogger().setLevel(logging.INFO)

handler = Mangum(app, lifespan="off")
