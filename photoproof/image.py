import copy as _copy
import hashlib
import json

import numpy as np
from PIL import Image as PILImage

from . import config
from .errors import ConfigurationError, SerializationError

SCALAR_TYPES = (str, int)


def _normalize_value(key, value):
    """Metadata 值只允许 str | int | 标量序列 (closed variant)。"""
    if isinstance(value, bool):
        raise ConfigurationError(f"metadata[{key!r}]: bool is not a permitted metadata value")
    if isinstance(value, SCALAR_TYPES):
        return value
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, bool) or not isinstance(item, SCALAR_TYPES):
                raise ConfigurationError(
                    f"metadata[{key!r}]: sequence items must be str or int, got {type(item).__name__}")
        return tuple(value)
    raise ConfigurationError(
        f"metadata[{key!r}]: unsupported value type {type(value).__name__}")


def _normalize_metadata(metadata):
    normalized = {}
    for key, value in (metadata or {}).items():
        if not isinstance(key, str):
            raise ConfigurationError(f"metadata keys must be strings, got {key!r}")
        normalized[key] = _normalize_value(key, value)
    return dict(sorted(normalized.items()))


class Image:
    """
    【图像模型】 I = (N x N matrix, metadata M)
    Pixels are held in a read-only uint8 numpy array; an Image never changes
    after construction, every edit yields a new one.
    """

    __slots__ = ("_pixels", "_metadata")

    def __init__(self, matrix, metadata=None):
        try:
            array = np.asarray(matrix)
        except ValueError as e:
            raise ConfigurationError(f"image matrix is not rectangular: {e}") from e
        if array.ndim != 2 or array.shape[0] != array.shape[1] or array.shape[0] == 0:
            raise ConfigurationError(f"image matrix must be a non-empty N x N square, got shape {array.shape}")
        if array.dtype.kind not in "iu":
            raise ConfigurationError(f"pixel values must be integers, got dtype {array.dtype}")
        if array.min() < config.MIN_PIXEL or array.max() > config.MAX_PIXEL:
            raise ConfigurationError(
                f"pixel values must lie in [{config.MIN_PIXEL}, {config.MAX_PIXEL}]")

        pixels = array.astype(np.uint8, copy=True)
        pixels.flags.writeable = False
        self._pixels = pixels
        self._metadata = _normalize_metadata(metadata)

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------
    @classmethod
    def create(cls, n, fill="constant", value=config.DEFAULT_FILL_VALUE, seed=None, metadata=None):
        """
        [Camera] 模拟拍照：生成 N x N 图像

        fill="constant" 用 value 填充；fill="random" 用 numpy 随机数 (可指定 seed)。
        """
        if n <= 0:
            raise ConfigurationError(f"N must be positive, got {n}")
        if fill == "constant":
            matrix = np.full((n, n), value, dtype=np.int64)
        elif fill == "random":
            rng = np.random.default_rng(seed)
            matrix = rng.integers(config.MIN_PIXEL, config.MAX_PIXEL + 1, size=(n, n))
        else:
            raise ConfigurationError(f"unknown fill policy: {fill!r}")
        return cls(matrix, metadata)

    @classmethod
    def from_file(cls, path, n=config.DEFAULT_IMAGE_SIZE, metadata=None):
        """Load a photo from disk as an 8-bit grayscale N x N image."""
        try:
            with PILImage.open(path) as src:
                gray = src.convert("L").resize((n, n), PILImage.BICUBIC)
                matrix = np.array(gray)
        except OSError as e:
            raise SerializationError(f"cannot read image file {path}: {e}") from e
        return cls(matrix, metadata)

    def save(self, path):
        PILImage.fromarray(self._pixels).save(path, format="PNG")

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------
    @property
    def n(self):
        return self._pixels.shape[0]

    @property
    def pixels(self):
        return self._pixels

    @property
    def metadata(self):
        return dict(self._metadata)

    def get(self, key, default=None):
        return self._metadata.get(key, default)

    # ------------------------------------------------------------------
    # derivation
    # ------------------------------------------------------------------
    def copy(self):
        return Image(self._pixels.copy(), _copy.deepcopy(self._metadata))

    def with_pixels(self, matrix):
        return Image(matrix, self._metadata)

    def with_metadata(self, **fields):
        metadata = dict(self._metadata)
        metadata.update(fields)
        return Image(self._pixels, metadata)

    # ------------------------------------------------------------------
    # canonical encoding
    # ------------------------------------------------------------------
    def to_dict(self):
        return {
            "matrix": self._pixels.tolist(),
            "metadata": {k: list(v) if isinstance(v, tuple) else v for k, v in self._metadata.items()},
        }

    def encode(self):
        """
        规范化 JSON 编码 (签名与电路比对的消息)
        Keys are sorted and separators fixed so the bytes are identical in
        every process.
        """
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"),
                          ensure_ascii=True).encode("ascii")

    @classmethod
    def decode(cls, data):
        try:
            obj = json.loads(data)
            matrix, metadata = obj["matrix"], obj["metadata"]
        except (ValueError, TypeError, KeyError) as e:
            raise SerializationError(f"malformed image encoding: {e}") from e
        if not isinstance(matrix, list) or not isinstance(metadata, dict):
            raise SerializationError("image encoding must hold a matrix list and a metadata object")
        return cls(matrix, metadata)

    def digest(self):
        return hashlib.sha256(self.encode()).hexdigest()

    # ------------------------------------------------------------------
    # equality
    # ------------------------------------------------------------------
    def equals(self, other):
        if not isinstance(other, Image):
            return False
        return (self._pixels.shape == other._pixels.shape
                and np.array_equal(self._pixels, other._pixels)
                and self._metadata == other._metadata)

    def __eq__(self, other):
        if not isinstance(other, Image):
            return NotImplemented
        return self.equals(other)

    def __hash__(self):
        return hash(self.encode())

    def __repr__(self):
        return f"Image(n={self.n}, metadata={self._metadata!r})"


def create(n, fill="constant", **kwargs):
    return Image.create(n, fill, **kwargs)


def encode(image):
    return image.encode()


def equals(a, b):
    return a.equals(b)


def copy(image):
    return image.copy()
