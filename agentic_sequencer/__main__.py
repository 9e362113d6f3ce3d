"""
Entry point for running as a module.

Usage: python -m agentic_sequencer run SEQUENCE
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
