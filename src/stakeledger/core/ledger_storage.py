"""
JSON file persistence for exported ledger state.

Writes go to a temporary file that atomically replaces the target, so a
crash mid-write never leaves a truncated snapshot behind.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, Optional

from .exceptions import LedgerError

logger = logging.getLogger(__name__)

STATE_FORMAT = 1


class LedgerStorage:
    """Persist and reload ``StakingRewardsPool.export_state()`` payloads."""

    def __init__(self, path: str) -> None:
        self.path = path

    def save(self, state: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        document = {
            "format": STATE_FORMAT,
            "saved_at": time.time(),
            "state": state,
        }
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)

        logger.info(
            "Ledger state saved",
            extra={
                "event": "storage.saved",
                "path": self.path,
                "version": state.get("version"),
                "participants": len(state.get("records", {})),
            }
        )

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Read a saved payload.

        Returns:
            The stored state, or None if nothing has been saved yet

        Raises:
            LedgerError: If the file exists but cannot be parsed
        """
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                document = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.error("Failed to load ledger state: %s", exc)
            raise LedgerError(
                f"Unreadable ledger state at {self.path}", details={"path": self.path}
            ) from exc

        if document.get("format") != STATE_FORMAT or "state" not in document:
            raise LedgerError(
                "Unsupported ledger state format",
                details={"path": self.path, "format": document.get("format")},
            )
        return document["state"]
