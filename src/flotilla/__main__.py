"""Main entry point for ``python -m flotilla``."""

from flotilla.cli.main import main


if __name__ == "__main__":
    main()
