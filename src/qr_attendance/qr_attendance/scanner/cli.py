from __future__ import annotations

import logging
from typing import Optional

import click

from ..core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_SCAN_INTERVAL_SECONDS
from .camera import CameraFrameSource, CameraUnavailableError
from .client import ScanClient
from .transport import HttpAttendanceTransport


def _fixed_location(latitude: Optional[float], longitude: Optional[float]):
    if latitude is None or longitude is None:
        return None
    return lambda: (latitude, longitude)


@click.command("scan")
@click.option("--server", envvar="QR_ATTENDANCE_SERVER", default="http://localhost:5000", show_default=True)
@click.option("--token", envvar="QR_ATTENDANCE_TOKEN", required=True, help="Participant API token.")
@click.option("--camera", "camera", default=0, show_default=True, type=int, help="Video device index.")
@click.option("--interval", default=DEFAULT_SCAN_INTERVAL_SECONDS, show_default=True, type=float)
@click.option("--timeout", default=DEFAULT_HTTP_TIMEOUT_SECONDS, show_default=True, type=float)
@click.option("--latitude", type=float, default=None, help="Device latitude for geofenced sessions.")
@click.option("--longitude", type=float, default=None, help="Device longitude for geofenced sessions.")
@click.option("--verbose", is_flag=True, default=False)
def main(server, token, camera, interval, timeout, latitude, longitude, verbose):
    """Scan an attendance QR code with the local camera."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(threadName)s : %(message)s",
    )

    try:
        frames = CameraFrameSource(camera)
    except CameraUnavailableError as e:
        raise click.ClickException(str(e))

    client = ScanClient(
        frames,
        HttpAttendanceTransport(server, token, timeout=timeout),
        locator=_fixed_location(latitude, longitude),
        interval=interval,
    )
    click.echo("Point the camera at the attendance QR code (Ctrl+C to cancel)...")
    try:
        while True:
            result = client.run()
            if result is None:
                break
            colour = "green" if result.success else "red"
            click.secho(f"[{result.code.value}] {result.message}", fg=colour)
            if result.retryable and click.confirm("Try again?", default=True):
                client.retry()
                continue
            break
    except KeyboardInterrupt:
        click.echo("Cancelled.")
    finally:
        client.stop()

    if client.result is not None and not client.result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
