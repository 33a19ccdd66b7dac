"""
Candidate path generation for remote deathlogs and log directories.

Deadside hosting providers do not agree on a directory layout. This module turns a
server's host and identifier into the ordered list of directories worth probing,
most likely first. Nothing here touches the network.
"""

import enum
import logging
from typing import List, Optional

from utils.server_identity import get_path_host, get_path_server_id

logger = logging.getLogger(__name__)


class PathCategory(enum.Enum):
    """Remote artifact categories the parsers read"""

    KILL_LOG = "csv"
    TEXT_LOG = "log"

    @property
    def field_name(self) -> str:
        """Server attribute holding the configured directory"""
        return "deathlogs_path" if self is PathCategory.KILL_LOG else "log_path"

    @property
    def label(self) -> str:
        return "Deathlogs" if self is PathCategory.KILL_LOG else "Logs"

    @property
    def artifact_pattern(self) -> str:
        """Regex matched against file names inside a candidate directory"""
        return ARTIFACT_PATTERNS[self]

    @property
    def templates(self) -> List[str]:
        return PATH_TEMPLATES[self]


PATH_TEMPLATES = {
    PathCategory.KILL_LOG: [
        "{host}_{server}/actual1/deathlogs",
        "{host}_{server}/actual/deathlogs",
        "{host}/{server}/actual1/deathlogs",
        "{host}/{server}/actual/deathlogs",
        "{server}/actual1/deathlogs",
        "{server}/actual/deathlogs",
    ],
    PathCategory.TEXT_LOG: [
        "{host}_{server}/Logs",
        "{host}_{server}/Deadside/Logs",
        "{host}/{server}/Logs",
        "{host}/{server}/Deadside/Logs",
        "{server}/Logs",
        "{server}/Deadside/Logs",
    ],
}

ARTIFACT_PATTERNS = {
    PathCategory.KILL_LOG: r".*\.csv$",
    PathCategory.TEXT_LOG: r"^Deadside.*\.log$",
}

# Fragments a configured path must contain before it is worth a remote check
_EXPECTED_FRAGMENTS = {
    PathCategory.KILL_LOG: ("actual1/deathlogs", "actual/deathlogs"),
    PathCategory.TEXT_LOG: ("Logs",),
}


def is_structurally_valid(path: Optional[str], category: PathCategory) -> bool:
    """Cheap check that a path looks like a directory of the given category

    Windows separators are accepted, ``C:\\srv\\actual1\\deathlogs`` passes.
    """
    if not path:
        return False
    normalized = path.replace("\\", "/")
    return any(fragment in normalized for fragment in _EXPECTED_FRAGMENTS[category])


def render_template(template: str, host: str, server: str) -> str:
    return template.replace("{host}", host).replace("{server}", server)


def generate_candidate_paths(server, category: PathCategory,
                             cached_path: Optional[str] = None) -> List[str]:
    """Build the ordered, de-duplicated list of candidate directories

    Order:
        1. the server's currently configured path for the category
        2. the last known good path from the cache, if different
        3. the category's templates filled with host and server identifier

    Templates that need a host are skipped when the server has no host, and all
    templates are skipped when it has no identifier.

    Args:
        server: Server descriptor
        category: Path category
        cached_path: Last known good path for this server and category

    Returns:
        Candidate paths, most likely first
    """
    candidates: List[str] = []

    def add(path: Optional[str]) -> None:
        if path and path not in candidates:
            candidates.append(path)

    add(server.get_path(category))
    add(cached_path)

    host = get_path_host(server)
    server_ident = get_path_server_id(server)
    if not server_ident:
        logger.debug(f"No identifier for server {server!r}, only configured/cached paths available")
        return candidates

    for template in category.templates:
        if "{host}" in template and not host:
            continue
        add(render_template(template, host, server_ident))

    return candidates
