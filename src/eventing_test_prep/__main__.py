"""Module entry point for `python -m eventing_test_prep`."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
