#!/usr/bin/env python3
"""
Launcher script for the body pose detection pipeline.

Usage:
    python run.py --camera 0    # Detect from webcam
    python run.py --help        # Show CLI options
"""

if __name__ == "__main__":
    import sys

    from bodypose_app.cli import main
    sys.exit(main())
