#!/usr/bin/env python3
"""
Launch script for the R9 to Garmin converter.

Usage:
    python run_convert.py convert <input_dir> <output_dir> [--verbose]

Examples:
    python run_convert.py convert ./r9-export ./garmin-logs
    python run_convert.py convert ./r9-export ./garmin-logs --aircraft-ident N171MA
"""

import sys
from pathlib import Path

# Add r9convert to path
sys.path.insert(0, str(Path(__file__).parent))

from r9convert.main import main


if __name__ == "__main__":
    sys.exit(main())
