"""
【变换注册表】 Permissible transformations

The set of transformations is closed: each kind has to be expressible as
constraints of the compliance circuit, so a new edit means a new variant
here, never runtime registration.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable

import numpy as np

from . import config
from .errors import ConfigurationError
from .image import Image

logger = logging.getLogger(__name__)


class TransformationKind(enum.IntEnum):
    """Transformation identifiers; the value is the circuit field element."""
    IDENTITY = 0            # T0
    CONTRAST_INCREMENT = 1  # T1
    CHANGE_AUTHOR = 2       # T2


class Transformation:
    kind: TransformationKind

    @property
    def id(self) -> TransformationKind:
        return self.kind

    def apply(self, image: Image) -> Image:
        raise NotImplementedError

    def params(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.name.lower(), **self.params()}


@dataclass(frozen=True)
class Identity(Transformation):
    kind = TransformationKind.IDENTITY

    def apply(self, image):
        return image.copy()


@dataclass(frozen=True)
class ContrastIncrement(Transformation):
    """
    对比度增量：v -> v + delta 当且仅当 v <= 255 - delta
    Pixels above the threshold are left untouched, never clamped or wrapped.
    """
    delta: int
    kind = TransformationKind.CONTRAST_INCREMENT

    def __post_init__(self):
        if isinstance(self.delta, bool) or not isinstance(self.delta, int):
            raise ConfigurationError(f"contrast delta must be an integer, got {self.delta!r}")
        if not 0 <= self.delta <= config.MAX_PIXEL:
            raise ConfigurationError(f"contrast delta must lie in [0, {config.MAX_PIXEL}], got {self.delta}")

    def apply(self, image):
        pixels = image.pixels.astype(np.int16)
        mask = pixels <= config.MAX_PIXEL - self.delta
        out = np.where(mask, pixels + self.delta, pixels)
        return image.with_pixels(out)

    def params(self):
        return {"delta": self.delta}


@dataclass(frozen=True)
class ChangeAuthor(Transformation):
    name: str
    kind = TransformationKind.CHANGE_AUTHOR

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise ConfigurationError(f"author name must be a string, got {self.name!r}")

    def apply(self, image):
        return image.with_metadata(**{config.AUTHOR_FIELD: self.name})

    def params(self):
        return {"name": self.name}


def apply(image: Image, transformation: Transformation) -> Image:
    return transformation.apply(image)


def transformation_check(image_in: Image, image_out: Image, transformation: Transformation) -> bool:
    """Runs the transformation on image_in and checks the result equals image_out."""
    ok = transformation.apply(image_in).equals(image_out)
    logger.debug("transformation check %s: %s", transformation, "pass" if ok else "fail")
    return ok


# =============================================================================
# PERMISSIBLE SETS
# =============================================================================

PermissibleSet = FrozenSet[TransformationKind]


def permissible_set(kinds: Iterable) -> PermissibleSet:
    """Build a genesis permissible set from kinds, names or numeric ids."""
    result = set()
    for item in kinds:
        result.add(_coerce_kind(item))
    if not result:
        raise ConfigurationError("permissible set must not be empty")
    return frozenset(result)


def _coerce_kind(item) -> TransformationKind:
    if isinstance(item, TransformationKind):
        return item
    if isinstance(item, Transformation):
        return item.kind
    if isinstance(item, str):
        key = item.strip().upper().replace("-", "_")
        if key in TransformationKind.__members__:
            return TransformationKind[key]
        raise ConfigurationError(f"unknown transformation name: {item!r}")
    if isinstance(item, int) and not isinstance(item, bool):
        try:
            return TransformationKind(item)
        except ValueError:
            raise ConfigurationError(f"unknown transformation id: {item}") from None
    raise ConfigurationError(f"cannot interpret {item!r} as a transformation id")


def is_permissible(kind, permissible: PermissibleSet) -> bool:
    """Plain set membership; the arithmetized form lives in the circuit only."""
    return _coerce_kind(kind) in permissible


# =============================================================================
# (DE)SERIALIZATION
# =============================================================================

def from_dict(data: Dict[str, Any]) -> Transformation:
    try:
        kind = _coerce_kind(data["kind"])
        if kind is TransformationKind.IDENTITY:
            return Identity()
        if kind is TransformationKind.CONTRAST_INCREMENT:
            return ContrastIncrement(data["delta"])
        return ChangeAuthor(data["name"])
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"malformed transformation: {data!r}") from e


def parse_transformation(text: str) -> Transformation:
    """
    命令行格式: "identity" | "contrast:<delta>" | "author:<name>"
    """
    head, _, arg = text.partition(":")
    head = head.strip().lower()
    if head == "identity":
        return Identity()
    if head in ("contrast", "contrast_increment"):
        try:
            delta = int(arg)
        except ValueError:
            raise ConfigurationError(f"contrast needs an integer delta: {text!r}") from None
        return ContrastIncrement(delta)
    if head in ("author", "change_author"):
        if not arg:
            raise ConfigurationError(f"author needs a name: {text!r}")
        return ChangeAuthor(arg)
    raise ConfigurationError(f"unknown transformation: {text!r}")
