"""
Persistence of the last successfully built revision.

The marker is a one-line text file holding the revision hash, the same
format earlier shell tooling wrote, so existing markers keep working.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..models.runtime import RevisionId
from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)


class BuildRecordStore:
    """Loads and saves the last-built revision marker."""

    def __init__(self, marker_path: Path):
        self.marker_path = Path(marker_path)

    def load(self) -> Optional[RevisionId]:
        """
        Return the recorded revision, or None when there is no usable marker.

        An unreadable or empty marker is treated as "never built".
        """
        if not self.marker_path.exists():
            logger.info("No record of previously built commit")
            return None
        try:
            content = self.marker_path.read_text(encoding="utf-8").strip()
        except OSError as e:
            handle_error(
                error=e,
                context=f"reading build marker {self.marker_path}",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
            return None
        if not content:
            logger.warning(f"Build marker {self.marker_path} is empty; ignoring it")
            return None
        revision = RevisionId(content.splitlines()[0])
        logger.info(f"Last built commit: {revision.short}")
        return revision

    def save(self, revision: RevisionId) -> None:
        """Atomically replace the marker with ``revision``."""
        self.marker_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=".last_built_", dir=str(self.marker_path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{revision.value}\n")
            os.replace(tmp_name, self.marker_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info(f"Recorded successful build of {revision.short} in {self.marker_path}")

    def clear(self) -> None:
        self.marker_path.unlink(missing_ok=True)
