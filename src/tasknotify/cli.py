"""
One-shot overdue sweep for external schedulers (cron, platform jobs).

Usage:
    tasknotify-sweep
    python -m tasknotify.cli

Prints the run summary as JSON on stdout. Exit code 0 on success, 1 when
the run aborted (store unreadable, or a malformed task in strict mode).
"""
from __future__ import annotations

import json
import logging
import sys
from typing import Optional, TextIO

from .context import AppContext, build_context
from .logging_setup import setup_logging
from .settings import get_settings
from .sweep import run_overdue_sweep

logger = logging.getLogger(__name__)


def run_once(context: AppContext, out: Optional[TextIO] = None) -> int:
    """Run one sweep with the given context and write its summary to `out`."""
    out = out if out is not None else sys.stdout
    try:
        result = run_overdue_sweep(context)
    except Exception as exc:
        logger.error("Overdue sweep failed: %s", exc)
        json.dump({"success": False, "error": type(exc).__name__, "message": str(exc)}, out)
        out.write("\n")
        return 1

    json.dump(result.to_dict(), out, indent=2, ensure_ascii=False)
    out.write("\n")
    return 0


# PUBLIC_INTERFACE
def main() -> int:
    """Entry point of the `tasknotify-sweep` console script."""
    settings = get_settings()
    setup_logging(settings.log_level)
    return run_once(build_context(settings))


if __name__ == "__main__":
    sys.exit(main())
