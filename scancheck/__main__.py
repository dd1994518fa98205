"""
scancheck/__main__.py
=====================

``python -m scancheck [paths...]`` — see :mod:`scancheck.main`.
"""

from scancheck.main import main

if __name__ == "__main__":
    raise SystemExit(main())
