import hashlib
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from .errors import SerializationError

logger = logging.getLogger(__name__)


def hash_bytes(data):
    """电路友好的哈希接口 (此处使用 SHA-256)"""
    return hashlib.sha256(data).digest()


class SignatureScheme:
    """
    【签名方案】 Ed25519
    相机持有私钥 sk，公钥 pk 公开给编辑者与验证者。
    Messages are hashed with hash_bytes() before signing, so what gets signed
    is always a fixed-size digest.
    """

    name = "ed25519"

    @staticmethod
    def keygen():
        secret_key = ed25519.Ed25519PrivateKey.generate()
        return secret_key, public_key_bytes(secret_key.public_key())

    @staticmethod
    def sign(message, secret_key):
        return secret_key.sign(hash_bytes(message))

    @staticmethod
    def verify(signature, message, public_key):
        """Returns False for a bad signature or an unusable public key, never raises."""
        try:
            key = load_public_key(public_key)
            key.verify(bytes(signature), hash_bytes(message))
        except InvalidSignature:
            return False
        except (SerializationError, TypeError, ValueError) as e:
            logger.debug("signature check could not run: %s", e)
            return False
        return True


def public_key_bytes(public_key):
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def load_public_key(data):
    if isinstance(data, ed25519.Ed25519PublicKey):
        return data
    try:
        return ed25519.Ed25519PublicKey.from_public_bytes(bytes(data))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"invalid Ed25519 public key: {e}") from e


def secret_key_to_pem(secret_key):
    return secret_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def secret_key_from_pem(data):
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"cannot load signing key: {e}") from e
    if not isinstance(key, ed25519.Ed25519PrivateKey):
        raise SerializationError(f"signing key must be Ed25519, got {type(key).__name__}")
    return key


def public_key_to_pem(public_key):
    return load_public_key(public_key).public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def public_key_from_pem(data):
    try:
        key = serialization.load_pem_public_key(data)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"cannot load public key: {e}") from e
    if not isinstance(key, ed25519.Ed25519PublicKey):
        raise SerializationError(f"public key must be Ed25519, got {type(key).__name__}")
    return public_key_bytes(key)
