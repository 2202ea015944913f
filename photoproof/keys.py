"""
【密钥材料】 SigningKey / ProvingKey / VerifyingKey

ProvingKey = (PCD proving key, camera public key), given to editors.
VerifyingKey = (PCD verifying key, camera public key), given to verifiers.
The camera alone holds the SigningKey.
"""

import base64
import hashlib
import json
import logging
import os
from dataclasses import dataclass

from . import config
from .errors import SerializationError
from .signature import (
    SignatureScheme,
    public_key_bytes,
    public_key_from_pem,
    public_key_to_pem,
    secret_key_from_pem,
    secret_key_to_pem,
)

logger = logging.getLogger(__name__)


def _b64(data):
    return base64.b64encode(data).decode("ascii")


def _unb64(text):
    try:
        return base64.b64decode(text, validate=True)
    except (ValueError, TypeError) as e:
        raise SerializationError(f"invalid base64 field: {e}") from e


def _loads(data, what):
    try:
        obj = json.loads(data)
    except (ValueError, TypeError) as e:
        raise SerializationError(f"malformed {what}: {e}") from e
    if not isinstance(obj, dict):
        raise SerializationError(f"malformed {what}: expected a JSON object")
    return obj


class SigningKey:
    """The camera's secret signing key and its public key."""

    def __init__(self, secret_key, scheme=SignatureScheme):
        self._secret_key = secret_key
        self.scheme = scheme
        self.public_key = public_key_bytes(secret_key.public_key())

    @classmethod
    def generate(cls, scheme=SignatureScheme):
        secret_key, _ = scheme.keygen()
        return cls(secret_key, scheme)

    def sign(self, message):
        return self.scheme.sign(message, self._secret_key)

    def to_pem(self):
        return secret_key_to_pem(self._secret_key)

    @classmethod
    def from_pem(cls, data):
        return cls(secret_key_from_pem(data))


@dataclass(frozen=True)
class VerifyingKey:
    backend: str
    circuit: dict
    circuit_digest: str
    key: bytes
    public_key: bytes

    def fingerprint(self):
        return hashlib.sha256(self.to_bytes()).hexdigest()

    def to_dict(self):
        return {
            "backend": self.backend,
            "circuit": self.circuit,
            "circuit_digest": self.circuit_digest,
            "key": _b64(self.key),
            "public_key": _b64(self.public_key),
        }

    def to_bytes(self):
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode("ascii")

    @classmethod
    def from_dict(cls, obj):
        try:
            return cls(
                backend=obj["backend"],
                circuit=obj["circuit"],
                circuit_digest=obj["circuit_digest"],
                key=_unb64(obj["key"]),
                public_key=_unb64(obj["public_key"]),
            )
        except KeyError as e:
            raise SerializationError(f"verifying key is missing field {e}") from e

    @classmethod
    def from_bytes(cls, data):
        return cls.from_dict(_loads(data, "verifying key"))


@dataclass(frozen=True)
class ProvingKey:
    backend: str
    circuit: dict
    circuit_digest: str
    key: bytes
    public_key: bytes
    verifying_key: VerifyingKey

    @property
    def permissible_ids(self):
        return tuple(self.circuit["permissible"])

    @property
    def n(self):
        return self.circuit["n"]

    def to_bytes(self):
        obj = {
            "backend": self.backend,
            "circuit": self.circuit,
            "circuit_digest": self.circuit_digest,
            "key": _b64(self.key),
            "public_key": _b64(self.public_key),
            "verifying_key": self.verifying_key.to_dict(),
        }
        return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("ascii")

    @classmethod
    def from_bytes(cls, data):
        obj = _loads(data, "proving key")
        try:
            return cls(
                backend=obj["backend"],
                circuit=obj["circuit"],
                circuit_digest=obj["circuit_digest"],
                key=_unb64(obj["key"]),
                public_key=_unb64(obj["public_key"]),
                verifying_key=VerifyingKey.from_dict(obj["verifying_key"]),
            )
        except KeyError as e:
            raise SerializationError(f"proving key is missing field {e}") from e


@dataclass(frozen=True)
class VerificationContext:
    """Everything a verifier needs: camera public key + PCD verifying key."""
    public_key: bytes
    verifying_key: VerifyingKey

    @classmethod
    def from_verifying_key(cls, verifying_key):
        return cls(public_key=verifying_key.public_key, verifying_key=verifying_key)


# =============================================================================
# KEY STORE (keys/ directory)
# =============================================================================

def save_keys(bundle, keys_dir=None):
    """Write a GenesisBundle's key material into keys_dir; returns the paths."""
    keys_dir = keys_dir or config.KEYS_DIR
    os.makedirs(keys_dir, exist_ok=True)
    paths = {
        "signing_key": os.path.join(keys_dir, config.SIGNING_KEY_FILE),
        "public_key": os.path.join(keys_dir, config.PUBLIC_KEY_FILE),
        "proving_key": os.path.join(keys_dir, config.PROVING_KEY_FILE),
        "verifying_key": os.path.join(keys_dir, config.VERIFYING_KEY_FILE),
    }
    with open(paths["signing_key"], "wb") as f:
        f.write(bundle.signing_key.to_pem())
    with open(paths["public_key"], "wb") as f:
        f.write(public_key_to_pem(bundle.signing_key.public_key))
    with open(paths["proving_key"], "wb") as f:
        f.write(bundle.proving_key.to_bytes())
    with open(paths["verifying_key"], "wb") as f:
        f.write(bundle.verifying_key.to_bytes())
    logger.info("key material written to %s", keys_dir)
    return paths


def _read(keys_dir, filename):
    path = os.path.join(keys_dir or config.KEYS_DIR, filename)
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError as e:
        raise SerializationError(f"key file not found: {path}") from e


def load_signing_key(keys_dir=None):
    return SigningKey.from_pem(_read(keys_dir, config.SIGNING_KEY_FILE))


def load_public_key(keys_dir=None):
    return public_key_from_pem(_read(keys_dir, config.PUBLIC_KEY_FILE))


def load_proving_key(keys_dir=None):
    return ProvingKey.from_bytes(_read(keys_dir, config.PROVING_KEY_FILE))


def load_verifying_key(keys_dir=None):
    return VerifyingKey.from_bytes(_read(keys_dir, config.VERIFYING_KEY_FILE))
