"""
Programmatic Alembic migration runner.

Runs migrations without an alembic.ini by pointing Alembic at the migrations
directory shipped inside this package.

Usage examples:
    python -m thingstore.db.run_migrations upgrade head
    python -m thingstore.db.run_migrations downgrade -1
    python -m thingstore.db.run_migrations current
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from alembic import command
from alembic.config import Config

from thingstore.core.logging import configure_logging, log_context
from thingstore.core.settings import get_app_settings
from thingstore.db.config import Settings, get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# command name -> (alembic function, default positional arguments)
COMMANDS: Dict[str, tuple[Callable[..., object], List[str]]] = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "current": (command.current, []),
    "history": (command.history, []),
    "heads": (command.heads, []),
}


# PUBLIC_INTERFACE
def build_config(settings: Optional[Settings] = None) -> Config:
    """Return an Alembic Config targeting the packaged migrations and the configured database."""
    settings = settings or get_settings()
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # Offline mode only; env.py connects with the async URL when online.
    cfg.set_main_option("sqlalchemy.url", settings.sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    """Run one Alembic command and return a process exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        logger.error("No Alembic command given. Example: upgrade head")
        return 1

    name, rest = args[0], args[1:]
    if name not in COMMANDS:
        logger.error("Unsupported Alembic command: %s (expected one of %s)", name, ", ".join(COMMANDS))
        return 2

    func, defaults = COMMANDS[name]
    with log_context(correlation_id=f"migrate-{uuid4().hex[:8]}"):
        logger.info("Running alembic %s %s", name, " ".join(rest or defaults))
        func(build_config(settings), *(rest or defaults))
        logger.info("Alembic %s finished", name)
    return 0


if __name__ == "__main__":
    configure_logging(get_app_settings().log_level)
    sys.exit(main())
