"""Maps logical resource names onto S3 object keys.

Key layout: ``<sub-directory>/<version-directory>/site-<id>/<logical-path>``,
with empty segments left out.
"""

import posixpath
from typing import Optional

from assetstore.core.request_context import SiteId, get_current_site
from assetstore.s3.configuration import S3Configuration


def concat_path(base: str, name: str) -> str:
    """Join two key fragments with a single ``/``.

    ``name`` is always treated as relative. Duplicate separators, ``.``
    segments and trailing separators are dropped; an empty result is
    returned as ``""``.
    """
    name = name.lstrip("/")
    joined = posixpath.join(base, name) if base else name
    if not joined:
        return ""
    normalized = posixpath.normpath(joined)
    return "" if normalized == "." else normalized


def _strip_leading_separator(value: str) -> str:
    return value[1:] if value.startswith("/") else value


def site_directory(site_id: SiteId) -> str:
    return f"site-{site_id}"


def site_specific_resource_name(name: str, site_id: Optional[SiteId] = None) -> str:
    """Prefix ``name`` with the active site's directory, if any.

    ``site_id`` overrides the request context when given.
    """
    if site_id is None:
        site_id = get_current_site()
    if site_id is None:
        return name
    return concat_path(site_directory(site_id), _strip_leading_separator(name))


def build_resource_name(config: S3Configuration, name: str, site_id: Optional[SiteId] = None) -> str:
    """Compute the S3 key for a logical resource name.

    >>> config = S3Configuration(bucket_sub_directory="assets", version_sub_directory="v2")
    >>> build_resource_name(config, "/img/a.png")
    'assets/v2/img/a.png'
    """
    # A leading slash would create an empty directory in S3 and a // in public URLs.
    name = _strip_leading_separator(name)

    base_directory = (config.bucket_sub_directory or "").lstrip("/")
    if config.version_sub_directory:
        base_directory = concat_path(base_directory, config.version_sub_directory)

    return concat_path(base_directory, site_specific_resource_name(name, site_id))
