"""Convenience shim to run the push-branch scan from a checkout."""

from __future__ import annotations

import sys

from src.scanner.runner import main


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
