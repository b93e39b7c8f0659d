"""Convenience entry point to run the LocVault self-test.

Allows running the checks with `python main.py --secret ABC123` from the
project root.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the src/ directory is on sys.path so `import locvault` works
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from locvault.selftest import main


if __name__ == "__main__":
    sys.exit(main())
