#!/usr/bin/env python3
"""dataproc-deploy CLI entrypoint -- run without pip install.

Usage:
    python dprun.py deploy
    python dprun.py --help
"""

import sys
from pathlib import Path

# Add src/ to import path so the dataproc_deploy package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from dataproc_deploy.cli import app

if __name__ == "__main__":
    app()
