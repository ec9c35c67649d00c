"""TCP reachability check for the profile share.

SMB (TCP 445) to the storage endpoint is commonly blocked by ISP or
corporate egress filtering. The pipeline checks it before touching
credentials so the operator gets a clear diagnostic instead of a silent
mount failure later.
"""

from __future__ import annotations

import socket

from fslxagent.logging import Logger, get_global_logger


def check_port(
    host: str,
    port: int = 445,
    timeout: float = 5.0,
    logger: Logger | None = None,
) -> bool:
    """Return True if a TCP connection to host:port succeeds within timeout.

    Never raises; DNS failures, refusals and timeouts all return False, as
    do hostnames that fail IDNA encoding and out-of-range ports.
    """
    if logger is None:
        logger = get_global_logger()

    logger.verbose("NETWORK", f"Testing TCP {host}:{port} (timeout {timeout}s)")
    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except (OSError, ValueError, OverflowError) as err:
        logger.debug("NETWORK", f"Connection to {host}:{port} failed: {err}")
        return False
    return True
