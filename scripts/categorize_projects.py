#!/usr/bin/env python3
"""
Assign keyword-scored categories to output/results.json
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from devtooling.categorizer import main


if __name__ == '__main__':
    sys.exit(main())
