"""Filename conventions for product images.

Names follow a small set of conventions built from an item number (letters
followed by digits), an optional color code and a three digit slot:

- ``A123456_001.jpg`` / ``A123456.001.jpg``: detail images, slots 001-008
- ``A123456_RED.101.jpg``: swatch color block (101, or ``101!`` for the hero)
- ``A123456_RED.102.jpg``: swatch product image (102 / ``102!``)

The remote store always addresses slots in dot form while local files are
commonly written in underscore form; `normalize` produces the canonical local
form and `classify` extracts the structured identity used by reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
import re

IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {"jpg", "jpeg", "png", "gif", "tiff", "tif", "bmp", "webp", "heic"}
)

INVALID_FILENAME = "Invalid Filename"
MISSING_SLOT = "Missing slot number"

DETAIL_SLOTS: tuple[str, ...] = tuple(f"{n:03d}" for n in range(1, 9))
SWATCH_SLOTS: frozenset[str] = frozenset({"101", "102"})

_EXT_ALT = "|".join(sorted(IMAGE_EXTENSIONS))

_SLOT_SUFFIX_RE = re.compile(rf"^([a-z0-9]+)[._](\d{{3}})\.({_EXT_ALT})$", re.IGNORECASE)

# Full-filename patterns accepted by the naming check
_SWATCH_BLOCK_RE = re.compile(
    rf"^[a-z0-9]+(?:_[a-z0-9]+)*[_.]101!?\.({_EXT_ALT})$", re.IGNORECASE
)
_SWATCH_IMAGE_RE = re.compile(
    rf"^[a-z0-9]+(?:_[a-z0-9]+)*[_.]102!?\.({_EXT_ALT})$", re.IGNORECASE
)
_DETAIL_SLOT_RE = re.compile(rf"^[a-z0-9]+[_.]00[1-8]\.({_EXT_ALT})$", re.IGNORECASE)

# Base-name patterns for classification, tried in order (bases are upper-cased)
_SWATCH_UNDERSCORE_RE = re.compile(r"^([A-Z]+\d+)_([A-Z0-9]+)[_.](10[12])(!?)$")
_SWATCH_DOT_RE = re.compile(r"^([A-Z]+\d+)\.([A-Z0-9]+)\.(10[12])(!?)$")
_DETAIL_UNDERSCORE_RE = re.compile(r"^([A-Z]+\d+)_(00[1-8])$")
_DETAIL_DOT_RE = re.compile(r"^([A-Z]+\d+)\.(00[1-8])$")
_ITEM_ONLY_RE = re.compile(r"^[A-Z]+\d+$")
_ITEM_MIN_LENGTH = 6


class ImageKind(str, Enum):
    SWATCH = "swatch"
    DETAIL = "detail"
    ITEM_ONLY = "item_only"


@dataclass(frozen=True)
class Classification:
    """Structured identity parsed from a filename.

    Attributes:
        kind: Which naming convention matched.
        item_number: Upper-cased item number.
        color_code: Upper-cased color code (swatch names only).
        slot: Three digit slot label, without the hero marker.
        is_hero: True for ``101!`` / ``102!``.
        warning: Set when the name is recognised but breaks the convention.
    """

    kind: ImageKind
    item_number: str
    color_code: str | None = None
    slot: str | None = None
    is_hero: bool = False
    warning: str | None = None

    @property
    def is_swatch(self) -> bool:
        return self.kind is ImageKind.SWATCH


def split_extension(name: str) -> tuple[str, str]:
    """Split `name` into (base, extension-without-dot)."""
    base, ext = os.path.splitext(name)
    return base, ext[1:] if ext else ""


def has_image_extension(name: str) -> bool:
    return split_extension(name.strip())[1].lower() in IMAGE_EXTENSIONS


def normalize(name: str) -> str:
    """Rewrite a trailing ``.NNN`` / ``_NNN`` slot into ``_NNN.ext``.

    Names that do not end in a slot followed by an image extension are
    returned unchanged.
    """
    match = _SLOT_SUFFIX_RE.match(name)
    if not match:
        return name
    base, slot, ext = match.groups()
    return f"{base}_{slot}.{ext}"


def _strip_known_extension(name: str) -> str:
    base, ext = split_extension(name)
    return base if ext.lower() in IMAGE_EXTENSIONS else name


def classify(name: str) -> Classification | None:
    """Parse the item number, color code and slot out of `name`."""
    base = _strip_known_extension(name.strip()).upper()

    for pattern in (_SWATCH_UNDERSCORE_RE, _SWATCH_DOT_RE):
        match = pattern.match(base)
        if match:
            item, color, slot, hero = match.groups()
            return Classification(
                kind=ImageKind.SWATCH,
                item_number=item,
                color_code=color,
                slot=slot,
                is_hero=bool(hero),
            )

    for pattern in (_DETAIL_UNDERSCORE_RE, _DETAIL_DOT_RE):
        match = pattern.match(base)
        if match:
            item, slot = match.groups()
            return Classification(kind=ImageKind.DETAIL, item_number=item, slot=slot)

    if _ITEM_ONLY_RE.match(base) and len(base) >= _ITEM_MIN_LENGTH:
        return Classification(kind=ImageKind.ITEM_ONLY, item_number=base, warning=MISSING_SLOT)

    return None


def check_naming_convention(filename: str) -> str | None:
    """Return a warning string when `filename` breaks the naming convention."""
    for pattern in (_SWATCH_BLOCK_RE, _SWATCH_IMAGE_RE, _DETAIL_SLOT_RE):
        if pattern.match(filename):
            return None
    return INVALID_FILENAME


def extract_item_number(filename: str) -> str | None:
    """Return the upper-cased item number for any recognised convention."""
    info = classify(filename)
    return info.item_number if info else None
