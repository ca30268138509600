"""IP address helpers."""

import ipaddr


def normalize_cidr(value: str) -> str:
    """Add a host prefix length to a bare IP address.

    Args:
        value: IP address or CIDR range

    Returns:
        ``"203.0.113.5"`` becomes ``"203.0.113.5/32"``; values that already
        carry a prefix, or are not IP addresses, are returned unchanged
    """
    if not isinstance(value, str) or "/" in value:
        return value
    try:
        network = ipaddr.IPNetwork(value)
    except ValueError:
        return value
    return str(network)
