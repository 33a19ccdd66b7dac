"""
Server Identity utility for the Emeralds Killfeed PvP Statistics Discord Bot.

This module decides which host and server identifiers go into remote directory
names. Hosting providers lay servers out as ``<host>_<id>``, ``<host>/<id>`` or
just ``<id>``, so both pieces must be stable across UUID changes.
"""

import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def clean_hostname(hostname: Optional[str]) -> str:
    """Remove a port specification (``host:8822``) from a hostname

    Returns an empty string when no hostname is known.
    """
    if not hostname:
        return ""
    return str(hostname).strip().split(':')[0]


def get_path_host(server) -> str:
    """Get the host component for path construction

    Uses the server's SFTP host, falling back to its generic hostname.
    """
    return clean_hostname(server.sftp_host or server.hostname)


def get_path_server_id(server) -> str:
    """Get the stable server identifier for path construction

    The original (numeric) server ID survives UUID resets, so it wins when set.
    Otherwise the server ID is used, and as a last resort the display name with
    whitespace replaced by underscores.

    Args:
        server: Server descriptor

    Returns:
        Identifier string, empty if the server has none of the above
    """
    original_id = str(server.original_server_id).strip() if server.original_server_id else ""
    if original_id:
        return original_id

    server_id = str(server.server_id).strip() if server.server_id else ""
    if server_id:
        return server_id

    name = str(server.name).strip() if server.name else ""
    if name:
        identifier = _WHITESPACE.sub("_", name)
        logger.debug(f"Server has no identifier, using display name '{identifier}'")
        return identifier

    return ""
