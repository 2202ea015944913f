"""
【生成器】 Generator (trusted party, run once per genesis configuration)

1. generate a signature key pair for the camera
2. compile the compliance predicate for the permissible set and N
3. run the backend's one-time setup to obtain the PCD keys
"""

import logging
from typing import NamedTuple

from .backend import get_backend
from .compliance import CompliancePredicate
from .errors import BackendError, ConfigurationError
from .image import Image
from .keys import ProvingKey, SigningKey, VerifyingKey
from .proof import SignatureProof
from .transformations import permissible_set

logger = logging.getLogger(__name__)


class GenesisBundle(NamedTuple):
    proving_key: ProvingKey
    verifying_key: VerifyingKey
    signing_key: SigningKey


def generate(genesis_image, permissible, backend=None, entropy=None):
    """
    Generator(I, permissible) -> (pk, vk, sk)

    genesis_image only fixes N; the key material is independent of any
    particular image captured later. A BackendError here is final, the
    setup is deterministic for identical inputs.
    """
    if not isinstance(genesis_image, Image):
        raise ConfigurationError("genesis image must be an Image")
    permissible = permissible_set(permissible)
    backend = backend or get_backend()

    signing_key = SigningKey.generate()

    circuit = backend.compile(CompliancePredicate(), permissible, genesis_image.n)
    try:
        pk_blob, vk_blob = backend.setup(circuit, entropy=entropy)
    except (ValueError, TypeError) as e:
        raise BackendError(f"backend setup failed: {e}", cause=e) from e

    description = circuit.describe()
    digest = circuit.digest()
    verifying_key = VerifyingKey(
        backend=backend.name,
        circuit=description,
        circuit_digest=digest,
        key=vk_blob,
        public_key=signing_key.public_key,
    )
    proving_key = ProvingKey(
        backend=backend.name,
        circuit=description,
        circuit_digest=digest,
        key=pk_blob,
        public_key=signing_key.public_key,
        verifying_key=verifying_key,
    )
    logger.info("genesis keys generated: N=%d permissible=%s",
                genesis_image.n, sorted(k.name for k in permissible))
    return GenesisBundle(proving_key, verifying_key, signing_key)


def sign(image, signing_key):
    """[相机] 对原始图像签名，得到信任根 SignatureProof"""
    return SignatureProof(signing_key.sign(image.encode()))
