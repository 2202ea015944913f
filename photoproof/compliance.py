"""
【合规谓词】 Compliance predicate

Base case:      no prior image; accept iff the signature over encode(image_out)
                verifies under the camera public key.
Inductive case: accept iff (1) T is in the genesis permissible set,
                (2) apply(image_in, T) == image_out, and
                (3) the public key of the prior step equals that of the next.

CompliancePredicate is the plain form used outside the proof backend.
ComplianceCircuit is the arithmetized form the backend evaluates: an ordered
list of named constraints over a Witness.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from . import config
from .errors import BackendError, PhotoProofError, SerializationError
from .image import Image
from .signature import SignatureScheme
from .transformations import (
    ChangeAuthor,
    ContrastIncrement,
    Identity,
    PermissibleSet,
    Transformation,
    is_permissible,
    transformation_check,
)

logger = logging.getLogger(__name__)

# BN254 scalar field, the field the circuit is defined over
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

PREDICATE_NAME = "photoproof-compliance"
PREDICATE_VERSION = 1


def _is_zero(x):
    return 1 if x % FIELD_MODULUS == 0 else 0


# =============================================================================
# WITNESS
# =============================================================================

@dataclass(frozen=True)
class Witness:
    """
    Full assignment for one edit step, including the secret parts.

    mode "base":    image_out + signature over it
    mode "upgrade": signature over image_in, then image_in -T-> image_out
    mode "compose": prior PCD proof binding image_in, then image_in -T-> image_out
    """
    image_out: Image
    public_key_out: bytes
    image_in: Optional[Image] = None
    transformation: Optional[Transformation] = None
    public_key_in: Optional[bytes] = None
    signature: Optional[bytes] = None
    prior_proof: Optional[bytes] = None
    prior_public_witness: Optional[bytes] = None

    @property
    def mode(self):
        if self.image_in is None:
            return "base"
        if self.prior_proof is not None:
            return "compose"
        return "upgrade"


@dataclass(frozen=True)
class PublicWitness:
    """The public part of a witness; what a verifier gets to see."""
    circuit: str
    n: int
    image: str
    public_key: str
    depth: int
    transformation: Optional[dict] = None

    def to_bytes(self):
        return json.dumps({
            "circuit": self.circuit,
            "depth": self.depth,
            "image": self.image,
            "n": self.n,
            "public_key": self.public_key,
            "transformation": self.transformation,
        }, sort_keys=True, separators=(",", ":")).encode("ascii")

    @classmethod
    def from_bytes(cls, data):
        try:
            obj = json.loads(data)
            return cls(
                circuit=str(obj["circuit"]),
                n=int(obj["n"]),
                image=str(obj["image"]),
                public_key=str(obj["public_key"]),
                depth=int(obj["depth"]),
                transformation=obj.get("transformation"),
            )
        except (ValueError, TypeError, KeyError) as e:
            raise SerializationError(f"malformed public witness: {e}") from e


@dataclass
class EvaluationEnv:
    """Hooks the backend hands to constraints while evaluating a witness."""
    circuit_digest: str
    verify_prior: Optional[Callable[[bytes, bytes], bool]] = None


# =============================================================================
# CIRCUIT
# =============================================================================

@dataclass(frozen=True)
class Constraint:
    name: str
    description: str
    check: Callable[[Witness, EvaluationEnv], bool]


class ComplianceCircuit:
    """
    【算术电路】 Compliance predicate compiled for one permissible set and one N.
    Every constraint is evaluated; a single failure rejects the witness.
    """

    def __init__(self, permissible: PermissibleSet, n: int, scheme=SignatureScheme):
        self.permissible = permissible
        self.permissible_ids = tuple(sorted(int(k) for k in permissible))
        self.n = n
        self.scheme = scheme
        self.constraints: List[Constraint] = [
            Constraint("dimensions", "images are N x N", self._dimensions),
            Constraint("anchor", "signature or prior proof binds the input", self._anchor),
            Constraint("permissible", "prod(1 - isZero(p_i - T)) == 0", self._membership),
            Constraint("transformation", "image_out == T(image_in)", self._transformation),
            Constraint("continuity", "pk_in == pk_out", self._continuity),
        ]

    def describe(self):
        return {
            "predicate": PREDICATE_NAME,
            "version": PREDICATE_VERSION,
            "n": self.n,
            "permissible": list(self.permissible_ids),
            "constraints": [c.name for c in self.constraints],
            "signature_scheme": self.scheme.name,
            "hash": "sha256",
        }

    def digest(self):
        encoded = json.dumps(self.describe(), sort_keys=True, separators=(",", ":")).encode("ascii")
        return hashlib.sha256(encoded).hexdigest()

    def evaluate(self, witness: Witness, env: EvaluationEnv):
        """Returns the names of the failed constraints (empty list = satisfied)."""
        return [c.name for c in self.constraints if not self.check(c, witness, env)]

    def check(self, constraint: Constraint, witness: Witness, env: EvaluationEnv) -> bool:
        try:
            return bool(constraint.check(witness, env))
        except (PhotoProofError, ValueError, TypeError) as e:
            logger.debug("constraint %s errored: %s", constraint.name, e)
            return False

    # ------------------------------------------------------------------
    # constraints
    # ------------------------------------------------------------------
    def _dimensions(self, w, env):
        if w.image_out.n != self.n:
            return False
        return w.image_in is None or w.image_in.n == self.n

    def _anchor(self, w, env):
        if w.mode == "base":
            return self.scheme.verify(w.signature or b"", w.image_out.encode(), w.public_key_out)
        if w.mode == "upgrade":
            if w.signature is None or w.public_key_in is None:
                return False
            return self.scheme.verify(w.signature, w.image_in.encode(), w.public_key_in)

        # compose: the prior proof must verify and its public witness must
        # bind exactly image_in and pk_in under this same circuit
        if env.verify_prior is None or w.prior_public_witness is None or w.public_key_in is None:
            return False
        prior = PublicWitness.from_bytes(w.prior_public_witness)
        binds = (prior.circuit == env.circuit_digest
                 and prior.image == w.image_in.digest()
                 and prior.public_key == bytes(w.public_key_in).hex())
        valid = env.verify_prior(w.prior_proof, w.prior_public_witness)
        return binds and valid

    def _membership(self, w, env):
        if w.mode == "base":
            return True
        if w.transformation is None:
            return False
        t = int(w.transformation.kind)
        not_permissible = 1
        for p in self.permissible_ids:
            not_permissible = (not_permissible * (1 - _is_zero(p - t))) % FIELD_MODULUS
        return not_permissible == 0

    def _transformation(self, w, env):
        if w.mode == "base":
            return True
        t, a, b = w.transformation, w.image_in, w.image_out
        if t is None or a.n != b.n:
            return False
        if isinstance(t, Identity):
            return np.array_equal(a.pixels, b.pixels) and a.metadata == b.metadata
        if isinstance(t, ContrastIncrement):
            return self._contrast_constraint(a.pixels, b.pixels, t.delta) and a.metadata == b.metadata
        if isinstance(t, ChangeAuthor):
            expected = a.metadata
            expected[config.AUTHOR_FIELD] = t.name
            return np.array_equal(a.pixels, b.pixels) and b.metadata == expected
        return False

    @staticmethod
    def _contrast_constraint(val_in, val_out, delta):
        """
        逐像素约束:
          val_in <= 255 - delta  ->  val_out == val_in + delta
          otherwise              ->  val_out == val_in
        """
        val_in = val_in.astype(np.int16)
        val_out = val_out.astype(np.int16)
        below = val_in <= config.MAX_PIXEL - delta
        shifted = val_out == val_in + delta
        kept = val_out == val_in
        return bool(np.all(np.where(below, shifted, kept)))

    def _continuity(self, w, env):
        if w.mode == "base":
            return True
        if w.public_key_in is None:
            return False
        return bytes(w.public_key_in) == bytes(w.public_key_out)

    # ------------------------------------------------------------------
    # public witness
    # ------------------------------------------------------------------
    def public_witness(self, witness: Witness, circuit_digest: str) -> PublicWitness:
        if witness.mode == "base":
            depth = 0
        elif witness.mode == "upgrade":
            depth = 1
        else:
            depth = PublicWitness.from_bytes(witness.prior_public_witness).depth + 1
        t = witness.transformation
        return PublicWitness(
            circuit=circuit_digest,
            n=self.n,
            image=witness.image_out.digest(),
            public_key=bytes(witness.public_key_out).hex(),
            depth=depth,
            transformation=t.to_dict() if t is not None else None,
        )


# =============================================================================
# PLAIN PREDICATE
# =============================================================================

class CompliancePredicate:
    """Plain (non-arithmetized) form of the compliance predicate."""

    def __init__(self, scheme=SignatureScheme):
        self.scheme = scheme

    def accepts_base(self, image_out, signature, public_key):
        return self.scheme.verify(signature, image_out.encode(), public_key)

    def permits(self, transformation, permissible):
        """Clause (1) alone; the Prover rejects early with it before running the backend."""
        return is_permissible(transformation.kind, permissible)

    def accepts_step(self, image_in, image_out, transformation, permissible, public_key_in, public_key_out):
        clauses = [
            self.permits(transformation, permissible),
            transformation_check(image_in, image_out, transformation),
            bytes(public_key_in) == bytes(public_key_out),
        ]
        return all(clauses)

    def arithmetize(self, permissible: PermissibleSet, n: int) -> ComplianceCircuit:
        if n <= 0:
            raise BackendError(f"cannot arithmetize predicate for N={n}")
        return ComplianceCircuit(permissible, n, self.scheme)
