"""PhotoProof 异常体系

Verifier 对无效证明只返回 False，不抛异常；
下面这些异常只用于配置错误、后端失败和编解码失败。
"""


class PhotoProofError(Exception):
    """Base class for every error raised by the photoproof package."""


class ConfigurationError(PhotoProofError, ValueError):
    """Malformed permissible set, invalid pixels/metadata or an N mismatch."""


class BackendError(PhotoProofError):
    """Circuit compile / setup / prove / verify failure.

    Backend operations are deterministic for identical inputs, so callers
    must not retry a failed call without changing something.
    """

    def __init__(self, message, cause=None):
        super().__init__(message)
        self.cause = cause


class ProvingCancelled(BackendError):
    """A proving job was cancelled; its partial result has been discarded."""


class SerializationError(PhotoProofError):
    """An image, proof or key could not be encoded or decoded."""
