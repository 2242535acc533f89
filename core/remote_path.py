"""Remote store addressing.

The store shards assets by item number: ``{base}/{first char}/{last two
chars}/{name}``. Names are lower-case, use the dot slot form and never carry a
file extension.
"""

from __future__ import annotations

import re
from urllib.parse import quote

from core.naming import split_extension

DEFAULT_BASE_URL = "https://qvc.scene7.com/is/image/QVC"

_UNDERSCORE_SLOT_RE = re.compile(r"_(\d{3})$")
_ITEM_SPLIT_RE = re.compile(r"[_.]")
_URL_SAFE = "._-~!"


def remote_asset_name(normalized_name: str) -> str:
    """Return the lower-case, extension-less, dot-slot asset name."""
    base, _ = split_extension(normalized_name.lower())
    return _UNDERSCORE_SLOT_RE.sub(r".\1", base)


def derive_remote_url(normalized_name: str, base_url: str = DEFAULT_BASE_URL) -> str | None:
    """Compute the remote fetch URL for `normalized_name`.

    Returns None when no item number can be read from the name.
    """
    converted = remote_asset_name(normalized_name)
    item_number = _ITEM_SPLIT_RE.split(converted, maxsplit=1)[0]
    if not item_number:
        return None
    shard = f"{quote(item_number[0], safe='')}/{quote(item_number[-2:], safe='')}"
    return f"{base_url.rstrip('/')}/{shard}/{quote(converted, safe=_URL_SAFE)}"
