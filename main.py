#!/usr/bin/env python3
"""Run a blocked Gibbs experiment session from the project checkout."""

import sys

from pgibbs.cli import main

if __name__ == "__main__":
    sys.exit(main())
