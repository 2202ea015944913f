"""
【验证者】 Verifier

verify() is pure and fail-closed: an invalid or undecodable proof is a
plain False, never an exception. Only inputs of the wrong type raise
SerializationError.
"""

import logging

from .backend import get_backend
from .compliance import CompliancePredicate, PublicWitness
from .errors import BackendError, SerializationError
from .image import Image
from .keys import VerificationContext
from .proof import PCDProof, SignatureProof
from .signature import SignatureScheme

logger = logging.getLogger(__name__)


class Verifier:

    def __init__(self, backend=None, scheme=SignatureScheme):
        self.backend = backend
        self.predicate = CompliancePredicate(scheme)

    def verify(self, context, image, proof):
        ok, _ = self.check(context, image, proof)
        return ok

    def check(self, context, image, proof):
        """Returns (is_valid, reason)."""
        if not isinstance(context, VerificationContext):
            raise SerializationError(f"not a verification context: {type(context).__name__}")
        if not isinstance(image, Image):
            raise SerializationError(f"not an image: {type(image).__name__}")

        if isinstance(proof, SignatureProof):
            return self._check_signature(context, image, proof)
        if isinstance(proof, PCDProof):
            return self._check_pcd(context, image, proof)
        raise SerializationError(f"not a proof: {type(proof).__name__}")

    def _check_signature(self, context, image, proof):
        if self.predicate.accepts_base(image, proof.signature, context.public_key):
            return True, "camera signature valid"
        return False, "camera signature does not match this image"

    def _check_pcd(self, context, image, proof):
        vk = context.verifying_key
        if proof.verifying_key_ref != vk.fingerprint():
            return False, "proof was made for a different verifying key"

        try:
            backend = self.backend or get_backend(vk.backend)
            valid = backend.verify(proof.proof, vk, proof.public_witness)
        except BackendError as e:
            logger.debug("backend verification errored: %s", e)
            return False, "backend could not verify the proof"
        if not valid:
            return False, "PCD proof is invalid"

        try:
            public = PublicWitness.from_bytes(proof.public_witness)
        except SerializationError:
            return False, "public witness is unreadable"

        if public.circuit != vk.circuit_digest:
            return False, "proof was made for a different circuit"
        if public.n != image.n or public.image != image.digest():
            return False, "proof does not bind this image"
        if public.public_key != bytes(context.public_key).hex():
            return False, "proof is bound to a different camera key"
        return True, f"edit chain valid (depth {public.depth})"


def verify(context, image, proof):
    return Verifier().verify(context, image, proof)
