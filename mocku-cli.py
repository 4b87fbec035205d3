#!/usr/bin/env python3
"""
Mocku - request-driven mock API responder

This is a convenience wrapper that calls the packaged implementation.
The actual implementation is in src/mocku/cli.py

Usage:
    python3 mocku-cli.py serve mocks --port 8080
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

from mocku.cli import main

if __name__ == '__main__':
    main()
