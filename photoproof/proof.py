"""Proof = SignatureProof | PCDProof

A lineage starts with the camera's SignatureProof; the first Prover call
upgrades it to a PCDProof and every later step stays a PCDProof.
"""

import base64
import json
from dataclasses import dataclass
from typing import Union

from .errors import SerializationError


@dataclass(frozen=True)
class SignatureProof:
    signature: bytes
    kind = "signature"


@dataclass(frozen=True)
class PCDProof:
    proof: bytes
    public_witness: bytes
    verifying_key_ref: str
    kind = "pcd"


Proof = Union[SignatureProof, PCDProof]


def proof_to_dict(proof):
    if isinstance(proof, SignatureProof):
        return {"kind": proof.kind, "signature": base64.b64encode(proof.signature).decode("ascii")}
    if isinstance(proof, PCDProof):
        return {
            "kind": proof.kind,
            "proof": base64.b64encode(proof.proof).decode("ascii"),
            "public_witness": base64.b64encode(proof.public_witness).decode("ascii"),
            "verifying_key_ref": proof.verifying_key_ref,
        }
    raise SerializationError(f"not a proof: {type(proof).__name__}")


def proof_from_dict(obj):
    if not isinstance(obj, dict):
        raise SerializationError("proof must be a JSON object")
    try:
        kind = obj["kind"]
        if kind == SignatureProof.kind:
            return SignatureProof(base64.b64decode(obj["signature"], validate=True))
        if kind == PCDProof.kind:
            return PCDProof(
                proof=base64.b64decode(obj["proof"], validate=True),
                public_witness=base64.b64decode(obj["public_witness"], validate=True),
                verifying_key_ref=str(obj["verifying_key_ref"]),
            )
    except (KeyError, ValueError, TypeError) as e:
        raise SerializationError(f"malformed proof: {e}") from e
    raise SerializationError(f"unknown proof kind: {obj.get('kind')!r}")


def proof_to_bytes(proof):
    return json.dumps(proof_to_dict(proof), sort_keys=True, separators=(",", ":")).encode("ascii")


def proof_from_bytes(data):
    try:
        obj = json.loads(data)
    except (ValueError, TypeError) as e:
        raise SerializationError(f"malformed proof: {e}") from e
    return proof_from_dict(obj)
