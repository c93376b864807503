#!/usr/bin/env python3
"""
Image classifier evaluation toolkit

Main entry point. Evaluates a classifier against a labeled image folder or
splits such a folder into train/val/test sets.

Version: see VERSION
"""

import sys
from pathlib import Path

from src.pipeline.run_pipeline import main as run_pipeline_main


def load_version() -> str:
    """Load version from VERSION file."""
    version_file = Path(__file__).parent / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()
    return "unknown"


def main(argv=None) -> int:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    if argv and argv[0] == "--version":
        print(f"classifier-eval {load_version()}")
        return 0

    return run_pipeline_main(argv)


if __name__ == "__main__":
    sys.exit(main())
