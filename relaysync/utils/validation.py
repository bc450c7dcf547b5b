"""
Input validation helpers.
"""

import re

IPV4_PATTERN = re.compile(
    r"^(?:(?:25[0-5]|2[0-4]\d|[01]?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|[01]?\d?\d)$"
)
HOSTNAME_PATTERN = re.compile(
    r"^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?:\.[A-Za-z0-9-]{1,63})*$"
)


def is_valid_host(host) -> bool:
    """
    Return True for an IPv4 address or a DNS hostname.

    Only obviously invalid input is rejected, such as
    empty strings, URLs or values with spaces.
    """
    if not host or not isinstance(host, str):
        return False
    return bool(IPV4_PATTERN.match(host) or HOSTNAME_PATTERN.match(host))
