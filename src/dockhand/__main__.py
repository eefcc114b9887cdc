"""Main entry point for ``python -m dockhand``."""

from dockhand.cli.main import main


if __name__ == "__main__":
    main()
