# src/crumbline/transports/beacon.py
"""One-way beacon transport.

Fire-and-forget delivery: the payload is POSTed from the dispatcher's worker
thread and the response is never inspected. Pending beacons are still
drained when the interpreter exits, bounded by ``shutdown_timeout``.
"""

from crumbline.transports.http import HTTPTransport


class BeaconTransport(HTTPTransport):
    """Best-effort one-way send; the collector's answer is ignored."""

    _name = "beacon"
    _check_status = False
