"""Module entry point: python -m cotraj ..."""

from __future__ import annotations

from cotraj.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
