"""Log setup for the xdbflow CLI."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Route xdbflow logs to stderr.

    INFO shows one line per lifecycle stage and batch summary; DEBUG (the
    CLI's ``--verbose``) adds every poll attempt and skipped index hit.
    Request logs from httpx stay at WARNING or above so polling does not
    flood the output.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
