#!/usr/bin/env python3
"""
Remove noisy tags (sdk, api, unearned smart-contracts/library) from the results
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from devtooling.tags import cleanup_main


if __name__ == '__main__':
    sys.exit(cleanup_main())
