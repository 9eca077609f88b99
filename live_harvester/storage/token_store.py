"""
Persists the continuity token between cycles for drivers that run each cycle
in a separate process.
"""

import json
import logging
import os
from pathlib import Path

from live_harvester.exceptions import ConfigurationError
from live_harvester.models.segment import ContinuityToken

log = logging.getLogger(__name__)


class ContinuityStore:
    """A JSON file mapping track names to the last committed segment URI."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> ContinuityToken:
        """Returns the stored token, or an empty one on cold start."""
        if not self.path.is_file():
            log.debug(f"No continuity token at '{self.path}', starting cold.")
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Could not read continuity token '{self.path}': {e}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Continuity token '{self.path}' must be a JSON object."
            )
        return {str(k): (str(v) if v else None) for k, v in data.items()}

    def save(self, token: ContinuityToken) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(token, f, indent=2)
        os.replace(tmp_path, self.path)
