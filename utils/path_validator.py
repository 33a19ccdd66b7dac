"""Remote validation of candidate directories."""

import logging

from utils.path_candidates import PathCategory

logger = logging.getLogger(__name__)


class RemotePathValidator:
    """Asks the transport whether a directory holds artifacts of a category

    ``validate`` never raises for transport problems: timeouts, auth failures and
    missing directories all come back as ``False``.
    """

    def __init__(self, transport):
        self.transport = transport

    async def validate(self, server, category: PathCategory) -> bool:
        """Check the directory the server currently points at for ``category``

        Args:
            server: Server descriptor, possibly pointed at a candidate path
            category: Path category

        Returns:
            True if at least one matching artifact was found
        """
        path = server.get_path(category)
        if not path:
            return False

        try:
            artifacts = await self.transport.list_artifacts(server, path, category.artifact_pattern)
        except Exception as e:
            logger.debug(f"{category.label} path {path} invalid for server {server.server_id}: {e}")
            return False

        if artifacts:
            logger.debug(f"Found {len(artifacts)} {category.label} artifacts in {path} "
                         f"for server {server.server_id}")
            return True
        return False
