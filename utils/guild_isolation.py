"""
Guild isolation scope for background jobs.

Repository calls take an explicit guild ID, so correctness never depends on an
ambient guild context. Deployments that tag work with the active guild (audit
logging, metrics) pass an isolation context to the health monitor; it is entered
once per guild and always released, even when a guild's sweep fails.
"""

from contextlib import contextmanager
from typing import Iterator, Optional, Protocol


class IsolationContext(Protocol):
    """Collaborator that tracks which guild the current job works on"""

    def set_context(self, guild_id: str, user_id: Optional[str] = None) -> None: ...

    def clear_context(self) -> None: ...


@contextmanager
def guild_isolation(context: Optional[IsolationContext], guild_id: str,
                    user_id: Optional[str] = None) -> Iterator[None]:
    """Enter a guild's isolation context exactly once and always leave it"""
    if context is None:
        yield
        return

    context.set_context(guild_id, user_id)
    try:
        yield
    finally:
        context.clear_context()
