"""
【证明者】 Prover

Upgrade mode (prior proof is a SignatureProof): the camera signature over
image_prior anchors the step image_prior -T-> image_next.

Compose mode (prior proof is a PCDProof): the prior proof and its public
witness are carried in the new witness; the circuit re-verifies them under
the lineage's verifying key, checks they bind image_prior and the same
public key, then enforces the inductive clauses for the new step.
"""

import logging

from .backend import get_backend
from .compliance import CompliancePredicate, PublicWitness, Witness
from .errors import ConfigurationError, SerializationError
from .image import Image
from .proof import PCDProof, SignatureProof
from .transformations import Transformation, TransformationKind

logger = logging.getLogger(__name__)


class Prover:

    def __init__(self, backend=None, predicate=None):
        self.backend = backend
        self.predicate = predicate or CompliancePredicate()

    def _backend_for(self, proving_key):
        return self.backend or get_backend(proving_key.backend)

    def prove(self, prior_proof, image_prior, image_next, transformation, proving_key,
              public_key=None, cancel=None):
        """
        Returns a fresh PCDProof for image_next.

        Raises ConfigurationError for a non-permissible transformation or an
        N mismatch, BackendError when the witness does not satisfy the
        circuit, ProvingCancelled when `cancel` is set mid-way.
        """
        if not isinstance(transformation, Transformation):
            raise ConfigurationError(f"not a transformation: {transformation!r}")
        for label, img in (("prior", image_prior), ("next", image_next)):
            if not isinstance(img, Image):
                raise ConfigurationError(f"{label} image must be an Image")
            if img.n != proving_key.n:
                raise ConfigurationError(
                    f"{label} image is {img.n}x{img.n}, key material was generated for N={proving_key.n}")

        permissible = frozenset(TransformationKind(i) for i in proving_key.permissible_ids)
        if not self.predicate.permits(transformation, permissible):
            raise ConfigurationError(
                f"{transformation.kind.name} is not in the permissible set "
                f"{sorted(k.name for k in permissible)}")

        public_key_out = bytes(public_key) if public_key is not None else proving_key.public_key

        if isinstance(prior_proof, SignatureProof):
            witness = Witness(
                image_out=image_next,
                public_key_out=public_key_out,
                image_in=image_prior,
                transformation=transformation,
                public_key_in=proving_key.public_key,
                signature=prior_proof.signature,
            )
        elif isinstance(prior_proof, PCDProof):
            if prior_proof.verifying_key_ref != proving_key.verifying_key.fingerprint():
                raise ConfigurationError("prior proof belongs to a different lineage's key material")
            try:
                prior = PublicWitness.from_bytes(prior_proof.public_witness)
                public_key_in = bytes.fromhex(prior.public_key)
            except (SerializationError, ValueError) as e:
                raise ConfigurationError(f"prior proof carries an unreadable public witness: {e}") from e
            witness = Witness(
                image_out=image_next,
                public_key_out=public_key_out,
                image_in=image_prior,
                transformation=transformation,
                public_key_in=public_key_in,
                prior_proof=prior_proof.proof,
                prior_public_witness=prior_proof.public_witness,
            )
        else:
            raise ConfigurationError(f"unknown proof kind: {type(prior_proof).__name__}")

        backend = self._backend_for(proving_key)
        circuit = backend.compile(self.predicate, permissible, proving_key.n)
        proof_bytes, public_witness = backend.prove(circuit, proving_key, witness, cancel=cancel)
        logger.info("%s step proved: %s", witness.mode, transformation)
        return PCDProof(
            proof=proof_bytes,
            public_witness=public_witness,
            verifying_key_ref=proving_key.verifying_key.fingerprint(),
        )


def prove(prior_proof, image_prior, image_next, transformation, proving_key, **kwargs):
    return Prover().prove(prior_proof, image_prior, image_next, transformation, proving_key, **kwargs)
