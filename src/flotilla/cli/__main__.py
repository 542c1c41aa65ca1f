"""Allow running the CLI as ``python -m flotilla.cli``."""

from flotilla.cli.main import main


if __name__ == "__main__":
    main()
