"""Module entrypoint for `python -m wslops`."""

from wslops.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
