"""
Run Alembic against the bundled migrations without an alembic.ini.

    python -m jobcard_api.db.run_migrations upgrade head
    python -m jobcard_api.db.run_migrations downgrade -1
    python -m jobcard_api.db.run_migrations current
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from jobcard_api.db.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


# PUBLIC_INTERFACE
def build_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # Only read in offline mode; online runs build an async engine in env.py.
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


COMMANDS: Dict[str, Callable[[Config, List[str]], None]] = {
    "upgrade": lambda cfg, rest: command.upgrade(cfg, rest[0] if rest else "head"),
    "downgrade": lambda cfg, rest: command.downgrade(cfg, rest[0] if rest else "-1"),
    "current": lambda cfg, rest: command.current(cfg, verbose="-v" in rest),
    "history": lambda cfg, rest: command.history(cfg, verbose="-v" in rest),
    "heads": lambda cfg, rest: command.heads(cfg),
}


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Dispatch `<command> [arg]` to Alembic; exits with status 2 on bad usage."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in COMMANDS:
        print(f"usage: run_migrations {{{','.join(COMMANDS)}}} [revision]", file=sys.stderr)
        sys.exit(2)
    COMMANDS[args[0]](build_config(), args[1:])


if __name__ == "__main__":
    main()
