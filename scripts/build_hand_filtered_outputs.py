#!/usr/bin/env python3
"""
Write hand-filtered matched projects and unmatched round reward recipients
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from devtooling.filters import main


if __name__ == '__main__':
    sys.exit(main())
