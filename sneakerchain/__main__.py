"""Entry point for ``python -m sneakerchain``."""

import sys

from sneakerchain.cli import main

if __name__ == "__main__":
    sys.exit(main())
