from __future__ import annotations

import os


def configure_runtime(*, matplotlib_backend: str = "Agg") -> None:
    """Force a non-interactive Matplotlib backend for CLI runs that only save figures."""
    os.environ.setdefault("MPLBACKEND", str(matplotlib_backend))
