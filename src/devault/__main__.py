"""Entry point for ``python -m devault``."""

from devault.cli import main

if __name__ == "__main__":
    main()
