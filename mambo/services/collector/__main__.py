"""Module entrypoint for running the collector with shared settings."""

from mambo.services.collector.main import main

if __name__ == "__main__":
    raise SystemExit(main())
