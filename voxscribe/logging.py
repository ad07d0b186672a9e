"""
voxscribe.logging - Package logger shared by every pipeline stage.

URL download, audio decoding and preprocessing, model cache lookups and
downloads, whisper.cpp inference and transcript export all log through the
single "voxscribe" logger defined here. Stages log progress at INFO and
per-step detail (sample counts, skipped engine parameters, cleanup) at
DEBUG. The CLI calls configure_logging() once per command; library users
configure logging themselves.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("voxscribe")


def configure_logging(verbose: bool = False) -> None:
    """Configure the voxscribe logger for a CLI run.

    Args:
        verbose: If True, show DEBUG detail from every stage; otherwise
            only warnings (failed cleanups, unexpected download paths)
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    logger.setLevel(level)
