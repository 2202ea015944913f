"""
【证明后端接口】 Proof backend

Any backend offering compile / setup / prove / verify can be plugged in
(pairing-based SNARK, STARK, ...). AttestationBackend is the reference
backend shipped here: it evaluates every constraint of the compliance
circuit on the full witness and, only if all of them hold, issues an
Ed25519 attestation over (circuit digest, public witness). The proof
reveals nothing beyond the public witness; soundness relies on the
proving key staying inside the attested proving service.
"""

import abc
import hashlib
import logging
import os

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from . import config
from .compliance import EvaluationEnv
from .errors import BackendError, PhotoProofError, ProvingCancelled
from .signature import public_key_bytes

logger = logging.getLogger(__name__)

ATTESTATION_DOMAIN = b"photoproof-attestation-v1"


class ProofBackend(abc.ABC):
    name = "abstract"

    @abc.abstractmethod
    def compile(self, predicate, permissible, n):
        """Arithmetize the compliance predicate; returns the circuit representation."""

    @abc.abstractmethod
    def setup(self, circuit, entropy=None):
        """One-time setup; returns (proving_key_blob, verifying_key_blob)."""

    @abc.abstractmethod
    def prove(self, circuit, proving_key, witness, cancel=None):
        """Returns (proof_bytes, public_witness_bytes)."""

    @abc.abstractmethod
    def verify(self, proof, verifying_key, public_witness):
        """Returns True only when the backend reports the proof valid."""


class AttestationBackend(ProofBackend):
    name = "attestation-ed25519"

    def compile(self, predicate, permissible, n):
        try:
            circuit = predicate.arithmetize(permissible, n)
        except BackendError:
            raise
        except (PhotoProofError, ValueError, TypeError) as e:
            raise BackendError(f"circuit compilation failed: {e}", cause=e) from e
        logger.info("compiled compliance circuit %s (N=%d, %d constraints)",
                    circuit.digest()[:16], n, len(circuit.constraints))
        return circuit

    def setup(self, circuit, entropy=None):
        if entropy is None:
            seed = os.urandom(config.SETUP_ENTROPY_BYTES)
        else:
            # any entropy source is stretched into a 32-byte Ed25519 seed
            seed = hashlib.sha256(bytes(entropy) + bytes.fromhex(circuit.digest())).digest()
        try:
            secret = ed25519.Ed25519PrivateKey.from_private_bytes(seed)
        except ValueError as e:
            raise BackendError(f"setup failed: {e}", cause=e) from e
        return seed, public_key_bytes(secret.public_key())

    def prove(self, circuit, proving_key, witness, cancel=None):
        digest = circuit.digest()
        if proving_key.circuit_digest != digest:
            raise BackendError("proving key was not generated for this circuit")

        vk = proving_key.verifying_key
        env = EvaluationEnv(
            circuit_digest=digest,
            verify_prior=lambda proof, pw: self.verify(proof, vk, pw),
        )

        failed = []
        for constraint in circuit.constraints:
            _check_cancel(cancel)
            if not circuit.check(constraint, witness, env):
                failed.append(constraint.name)
        if failed:
            raise BackendError(f"witness does not satisfy the compliance circuit: {', '.join(failed)}")

        public_witness = circuit.public_witness(witness, digest).to_bytes()
        try:
            secret = ed25519.Ed25519PrivateKey.from_private_bytes(bytes(proving_key.key))
        except (TypeError, ValueError) as e:
            raise BackendError(f"unusable proving key: {e}", cause=e) from e
        proof = secret.sign(_attestation_message(digest, public_witness))

        _check_cancel(cancel)
        logger.debug("proved %s step for circuit %s", witness.mode, digest[:16])
        return proof, public_witness

    def verify(self, proof, verifying_key, public_witness):
        try:
            key = ed25519.Ed25519PublicKey.from_public_bytes(bytes(verifying_key.key))
            message = _attestation_message(verifying_key.circuit_digest, bytes(public_witness))
            signature = bytes(proof)
        except (TypeError, ValueError) as e:
            raise BackendError(f"unusable verifying key, proof or public witness: {e}", cause=e) from e
        try:
            key.verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True


def _attestation_message(circuit_digest, public_witness):
    return ATTESTATION_DOMAIN + bytes.fromhex(circuit_digest) + hashlib.sha256(public_witness).digest()


def _check_cancel(cancel):
    if cancel is not None and cancel.is_set():
        raise ProvingCancelled("proving was cancelled; partial result discarded")


_BACKENDS = {
    AttestationBackend.name: AttestationBackend,
}


def get_backend(name=None):
    name = name or AttestationBackend.name
    try:
        return _BACKENDS[name]()
    except KeyError:
        raise BackendError(f"unknown proof backend: {name!r}") from None
