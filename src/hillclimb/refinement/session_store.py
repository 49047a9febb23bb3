"""
Session Store

Two named artifact slots inside the session directory:
  best.txt       incumbent
  candidate.txt  most recent challenger

Writes go to a temp file first and are renamed into place, so a reader
never sees a half-written slot.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

BEST_FILE = "best.txt"
CANDIDATE_FILE = "candidate.txt"


def atomic_write_text(path: Path, text: str) -> None:
    """Write text via temp file + rename."""
    temp_path = path.with_suffix(f".tmp.{uuid.uuid4().hex[:8]}")
    try:
        temp_path.write_text(text, encoding="utf-8")
        temp_path.replace(path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise


class SessionStore:
    """
    Incumbent/challenger slots for one session.

    Each session owns its directory; nothing here is shared between runs.
    """

    def __init__(self, session_dir: Union[str, Path]):
        self.session_dir = Path(session_dir)
        self.session_dir.mkdir(parents=True, exist_ok=True)

    @property
    def best_path(self) -> Path:
        return self.session_dir / BEST_FILE

    @property
    def candidate_path(self) -> Path:
        return self.session_dir / CANDIDATE_FILE

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def read_best(self) -> Optional[str]:
        return self._read(self.best_path)

    def read_candidate(self) -> Optional[str]:
        return self._read(self.candidate_path)

    def write_best(self, text: str) -> None:
        """
        Raises:
            ValueError: If ``text`` is empty (the incumbent is never blank)
        """
        if not text or not text.strip():
            raise ValueError("Refusing to write an empty incumbent")
        atomic_write_text(self.best_path, text)
        logger.debug(f"[Store] Wrote {self.best_path} ({len(text)} chars)")

    def write_candidate(self, text: str) -> None:
        atomic_write_text(self.candidate_path, text)
        logger.debug(f"[Store] Wrote {self.candidate_path} ({len(text)} chars)")

    def promote(self) -> str:
        """
        Copy the challenger into the incumbent slot.

        Returns:
            The new incumbent

        Raises:
            ValueError: If there is no non-empty challenger to promote
        """
        candidate = self.read_candidate()
        if candidate is None:
            raise ValueError("No candidate to promote")
        self.write_best(candidate)
        return candidate
