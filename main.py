#!/usr/bin/env python
"""
Label Print Service - Standalone Entry Point

Run directly:
    python main.py enqueue --entity-type item --ids 1 2 3

Or with environment variables:
    LABELPRINT_DATA_DIR=/var/lib/labels python main.py worker
"""

import os
import sys

# Ensure package is importable when running directly
if __name__ == '__main__':
    repo_dir = os.path.dirname(os.path.abspath(__file__))
    if repo_dir not in sys.path:
        sys.path.insert(0, repo_dir)

from label_print_service.__main__ import main


if __name__ == '__main__':
    sys.exit(main())
