#!/usr/bin/env python3
"""
Collapse a JSON dataset by id, keeping the freshest records per id
Usage: collapse_json_by_id.py <inputPath> [outputPath] [idField] [metadataField] [selfFundingPath] [opRewardsPath]
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from devtooling.collapse import main


if __name__ == '__main__':
    sys.exit(main())
