#!/usr/bin/env python3
"""
ADAPTSR Package Entry Point

Allows running ADAPTSR as a module:
    python -m adaptsr methods
    python -m adaptsr generate ./hr -o ./dataset
    python -m adaptsr validate ./dataset
"""

import sys

from adaptsr.core.cli import main

if __name__ == '__main__':
    sys.exit(main())
