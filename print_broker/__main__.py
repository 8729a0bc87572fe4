"""Entry point for ``python -m print_broker``."""

from .app import main

if __name__ == '__main__':
    main()
