"""
Run Alembic against the fieldops schema without an alembic.ini.

The app calls ``main(["upgrade", "head"])`` on startup; operators use the
module directly:

    python -m fieldops.db.run_migrations upgrade head
    python -m fieldops.db.run_migrations stamp 0001_visits_schema
    python -m fieldops.db.run_migrations current
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from fieldops.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def build_config() -> Config:
    """Alembic config pointing at the bundled revisions and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # Offline mode only; env.py builds its own async engine online.
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


def _requires_revision(fn: Callable[[Config, str], None]) -> Callable[..., None]:
    def run(cfg: Config, *args: str) -> None:
        if not args:
            raise SystemExit(f"Usage: {fn.__name__} <revision>")
        fn(cfg, args[0])

    return run


# Commands and the revision used when none is given.
COMMANDS: Dict[str, Callable[..., None]] = {
    "upgrade": lambda cfg, *a: command.upgrade(cfg, *(a or ("head",))),
    "downgrade": lambda cfg, *a: command.downgrade(cfg, *(a or ("-1",))),
    "history": lambda cfg, *a: command.history(cfg, *a),
    "current": lambda cfg, *a: command.current(cfg, *a),
    "heads": lambda cfg, *a: command.heads(cfg, *a),
    "show": _requires_revision(command.show),
    "stamp": _requires_revision(command.stamp),
}


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Dispatch one Alembic command, e.g. ``["upgrade", "head"]``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        raise SystemExit(f"No Alembic command given. One of: {', '.join(COMMANDS)}")

    name, rest = args[0], args[1:]
    runner = COMMANDS.get(name)
    if runner is None:
        raise SystemExit(f"Unsupported Alembic command: {name}")

    logger.info("alembic %s %s", name, " ".join(rest))
    runner(build_config(), *rest)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
