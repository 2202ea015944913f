"""
【角色会话】 Camera / Editor / Verifier

Each role owns only the key material it needs:
  CameraSession   -> SigningKey (plus the keys it hands out)
  EditorSession   -> ProvingKey
  VerifierSession -> VerificationContext
"""

import concurrent.futures
import logging
import threading

from . import config
from .errors import ConfigurationError, ProvingCancelled
from .generator import generate, sign
from .keys import VerificationContext
from .prover import Prover
from .transformations import Transformation
from .verifier import Verifier

logger = logging.getLogger(__name__)


class CameraSession:

    def __init__(self, bundle):
        self._bundle = bundle

    @classmethod
    def provision(cls, genesis_image, permissible, backend=None, entropy=None):
        """Trusted-party setup for a new camera."""
        return cls(generate(genesis_image, permissible, backend=backend, entropy=entropy))

    @property
    def bundle(self):
        return self._bundle

    @property
    def public_key(self):
        return self._bundle.signing_key.public_key

    def capture(self, image):
        """[相机] 拍照并签名 -> (image, SignatureProof)"""
        proof = sign(image, self._bundle.signing_key)
        logger.info("captured %dx%d image %s", image.n, image.n, image.digest()[:16])
        return image, proof

    def editor_session(self, **kwargs):
        return EditorSession(self._bundle.proving_key, **kwargs)

    def verifier_session(self, **kwargs):
        return VerifierSession(VerificationContext.from_verifying_key(self._bundle.verifying_key), **kwargs)


class ProvingJob:
    """Handle for a background proving call; cancel() discards any partial result."""

    def __init__(self, future, cancel_event):
        self._future = future
        self._cancel = cancel_event

    def cancel(self):
        self._cancel.set()
        self._future.cancel()

    def cancelled(self):
        return self._cancel.is_set()

    def done(self):
        return self._future.done()

    def result(self, timeout=None):
        """Returns (image_next, proof); raises ProvingCancelled after cancel()."""
        try:
            result = self._future.result(timeout=timeout)
        except concurrent.futures.CancelledError:
            raise ProvingCancelled("proving job was cancelled before it started") from None
        if self._cancel.is_set():
            raise ProvingCancelled("proving job was cancelled; result discarded")
        return result


class EditorSession:

    def __init__(self, proving_key, backend=None, max_workers=None):
        self.proving_key = proving_key
        self._prover = Prover(backend)
        self._max_workers = max_workers or config.PROVER_WORKERS
        self._executor = None
        self._lock = threading.Lock()

    def edit(self, image, proof, transformation, cancel=None):
        """Apply a transformation and prove it -> (image_next, proof_next)."""
        if not isinstance(transformation, Transformation):
            raise ConfigurationError(f"not a transformation: {transformation!r}")
        image_next = transformation.apply(image)
        proof_next = self._prover.prove(proof, image, image_next, transformation,
                                        self.proving_key, cancel=cancel)
        return image_next, proof_next

    def prove_async(self, image, proof, transformation):
        """Run edit() on the worker pool; setup and proving are long blocking calls."""
        cancel = threading.Event()
        future = self._pool().submit(self.edit, image, proof, transformation, cancel)
        return ProvingJob(future, cancel)

    def _pool(self):
        with self._lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="photoproof-prover")
            return self._executor

    def close(self):
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True, cancel_futures=True)
                self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class VerifierSession:

    def __init__(self, context, backend=None):
        self.context = context
        self._verifier = Verifier(backend)

    def verify(self, image, proof):
        return self._verifier.verify(self.context, image, proof)

    def check(self, image, proof):
        return self._verifier.check(self.context, image, proof)
