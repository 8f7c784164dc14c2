"""Allow ``python -m typsmith``."""

from typsmith.ui.cli import main


if __name__ == "__main__":
    main()
