"""Module entrypoint for ``python -m onvif_probe``."""

from __future__ import annotations

from onvif_probe.cli import main

if __name__ == "__main__":
    main()
