#!/usr/bin/env python3
"""
Entry point script for running the unblur viewer.

Usage:
    python run_unblur.py [--image PATH] [--size N] [--window W] [--shape circle|rectangle]

Examples:
    python run_unblur.py
    python run_unblur.py --image portrait.jpg --size 512 --window 768
    python run_unblur.py --size 64 --snapshot out.png --focus 32,32 --focus 32,32
"""

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from Unblur.application import main

if __name__ == '__main__':
    main()
