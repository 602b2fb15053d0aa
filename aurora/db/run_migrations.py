"""
Alembic entry point for the AuroraSocial schema.

There is no alembic.ini; the script location and database URL are set here
from aurora.db.config, so the same command works locally, in CI and at
container startup.

    python -m aurora.db.run_migrations upgrade head
    python -m aurora.db.run_migrations downgrade -1
    python -m aurora.db.run_migrations current
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from aurora.db.config import get_settings

# Commands that take optional positional arguments, with their defaults.
_COMMANDS: Dict[str, tuple[Callable[..., object], List[str]]] = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "history": (command.history, []),
    "current": (command.current, []),
    "heads": (command.heads, []),
    "revision": (command.revision, []),
}


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic config pointing at aurora/db/migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(Path(__file__).resolve().parent / "migrations"))
    # env.py swaps in the async URL for online runs.
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run one Alembic command, e.g. ["upgrade", "head"]."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("Missing Alembic command, e.g.: upgrade head")
        sys.exit(1)

    cmd, rest = args[0], args[1:]
    cfg = build_config()
    if cmd == "show":
        if not rest:
            print("Usage: show <revision>")
            sys.exit(2)
        command.show(cfg, rest[0])
        return
    if cmd not in _COMMANDS:
        print(f"Unsupported Alembic command: {cmd}")
        sys.exit(2)
    func, defaults = _COMMANDS[cmd]
    func(cfg, *(rest or defaults))


if __name__ == "__main__":
    main()
