"""CLI entry point for dexbuild.

Delegates to the build module so the project supports
running via `python -m dexbuild.main`.
"""
import sys

from .build import main as build_main

if __name__ == "__main__":
    sys.exit(build_main())
