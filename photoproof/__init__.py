"""
PhotoProof 图像认证包 (proof-carrying data)

相机对原始图像签名；编辑者只能施加预先声明的可允许变换，
每一步产生新的证明；验证者只需检查最新的 (image, proof)。
"""

from .errors import (
    BackendError,
    ConfigurationError,
    PhotoProofError,
    ProvingCancelled,
    SerializationError,
)
from .image import Image
from .transformations import (
    ChangeAuthor,
    ContrastIncrement,
    Identity,
    TransformationKind,
    is_permissible,
    permissible_set,
)
from .keys import ProvingKey, SigningKey, VerificationContext, VerifyingKey
from .proof import PCDProof, SignatureProof
from .generator import GenesisBundle, generate, sign
from .prover import Prover, prove
from .verifier import Verifier, verify
from .sessions import CameraSession, EditorSession, ProvingJob, VerifierSession

__version__ = "2.0.0"
__all__ = [
    "BackendError",
    "CameraSession",
    "ChangeAuthor",
    "ConfigurationError",
    "ContrastIncrement",
    "EditorSession",
    "GenesisBundle",
    "Identity",
    "Image",
    "PCDProof",
    "PhotoProofError",
    "Prover",
    "ProvingCancelled",
    "ProvingJob",
    "ProvingKey",
    "SerializationError",
    "SignatureProof",
    "SigningKey",
    "TransformationKind",
    "VerificationContext",
    "Verifier",
    "VerifierSession",
    "VerifyingKey",
    "generate",
    "is_permissible",
    "permissible_set",
    "prove",
    "sign",
    "verify",
]
