"""Request-scoped site context.

The host application marks which site a request belongs to; resource naming
reads it to place objects under a ``site-<id>`` directory.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union

SiteId = Union[int, str]

_current_site: ContextVar[Optional[SiteId]] = ContextVar("current_site", default=None)


def set_current_site(site_id: Optional[SiteId]) -> None:
    _current_site.set(site_id)


def get_current_site() -> Optional[SiteId]:
    return _current_site.get()


def clear_current_site() -> None:
    _current_site.set(None)


@contextmanager
def site_context(site_id: Optional[SiteId]) -> Iterator[None]:
    """Activate ``site_id`` for the duration of the block.

    Example:
        >>> with site_context(42):
        ...     provider.get_resource("/images/logo.png")  # reads site-42/images/logo.png
    """
    token = _current_site.set(site_id)
    try:
        yield
    finally:
        _current_site.reset(token)
