"""Unit tests for the migration Lambda handler."""

import json
import subprocess
from unittest.mock import MagicMock, patch

from api.migrate_handler import handler


class TestMigrateHandler:
    """Tests for handler()."""

    def test_upgrades_to_head_by_default(self):
        with patch("api.migrate_handler.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="Running upgrade", stderr="")

            result = handler({}, None)

            command = mock_run.call_args.args[0]
            assert command[-2:] == ["upgrade", "head"]

        assert result["statusCode"] == 200

    def test_explicit_revision(self):
        with patch("api.migrate_handler.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")

            handler({"revision": "0001"}, None)

            assert mock_run.call_args.args[0][-1] == "0001"

    def test_failure(self):
        with patch("api.migrate_handler.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="relation exists")

            result = handler(None, None)

        assert result["statusCode"] == 500
        assert json.loads(result["body"])["error"] == "relation exists"

    def test_timeout(self):
        with patch("api.migrate_handler.subprocess.run") as mock_run:
            mock_run.side_effect = subprocess.TimeoutExpired(cmd="alembic", timeout=300)

            result = handler({}, None)

        assert json.loads(result["body"])["message"] == "Migration timed out"
