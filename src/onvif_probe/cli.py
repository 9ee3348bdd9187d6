"""CLI for ONVIF WS-Discovery probing."""

from __future__ import annotations

import getpass
import sys

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]
from pydantic import ValidationError

from onvif_probe.errors import ProbeError
from onvif_probe.logging_setup import configure_logging
from onvif_probe.models import DeviceCredentials
from onvif_probe.probe import probe
from onvif_probe.settings import ProbeSettings


class ProbeCLI:
    """Standalone ONVIF discovery utilities."""

    def discover(
        self,
        timeout_s: float = 3.0,
        max_matches: int | None = None,
        termination: str | None = None,
        rounds: int | None = None,
        log_level: str = "WARNING",
    ) -> None:
        """Probe the local network and list responding ONVIF devices.

        Args:
            timeout_s: Seconds to wait for further replies
            max_matches: Stop once this many distinct devices answered
            termination: 'idle' or 'full_duration'
            rounds: Number of broadcast rounds
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        configure_logging(log_level=log_level)

        overrides: dict[str, object] = {}
        if max_matches is not None:
            overrides["max_matches"] = max_matches
        if termination is not None:
            overrides["termination"] = termination
        if rounds is not None:
            overrides["rounds"] = rounds

        try:
            settings = ProbeSettings(**overrides)  # type: ignore[arg-type]
            devices = probe(timeout_s, settings=settings)
        except (ProbeError, ValidationError, ValueError) as exc:
            _exit_with_error(str(exc))
            return

        if not devices:
            print("No ONVIF devices discovered.")
            print("Tips:")
            print("- Verify ONVIF and WS-Discovery are enabled on the device.")
            print("- Ensure this host and the device share an L2 subnet (multicast required).")
            print("- Retry with a longer wait: --timeout_s 10 --termination full_duration")
            return

        for index, device in enumerate(sorted(devices, key=lambda d: d.urn), start=1):
            print(f"{index}. Found '{device.name}' at {list(device.xaddrs)}")
            if device.hardware or device.location:
                print(f"   hardware: {device.hardware or '-'} location: {device.location or '-'}")

    def credentials(self, xaddr: str, u: str, p: str | None = None) -> None:
        """Build a credential record for a discovered device endpoint."""
        password = p if p is not None else getpass.getpass("ONVIF password: ")
        record = DeviceCredentials(xaddr=xaddr, user=u, password=password)
        print(record)


def _exit_with_error(message: str) -> None:
    print(f"✗ {message}", file=sys.stderr)
    raise SystemExit(1)


def main() -> None:
    """ONVIF probe CLI entrypoint."""
    fire.Fire(ProbeCLI)


if __name__ == "__main__":
    main()
