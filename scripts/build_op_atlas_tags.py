#!/usr/bin/env python3
"""
Build OP Atlas projects carrying taxonomy-filtered tags
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from devtooling.tags import atlas_main


if __name__ == '__main__':
    sys.exit(atlas_main())
