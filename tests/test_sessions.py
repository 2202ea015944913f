"""Tests for the camera / editor / verifier role sessions."""

import threading

import pytest

from photoproof import (
    CameraSession,
    ConfigurationError,
    ContrastIncrement,
    Identity,
    PCDProof,
    ProvingCancelled,
    TransformationKind,
)
from photoproof.backend import AttestationBackend


class SlowBackend(AttestationBackend):
    """Blocks inside prove() until released, to exercise cancellation."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def prove(self, circuit, proving_key, witness, cancel=None):
        self.started.set()
        self.release.wait(timeout=10)
        return super().prove(circuit, proving_key, witness, cancel=cancel)


@pytest.fixture
def camera(genesis):
    return CameraSession.provision(
        genesis, {TransformationKind.IDENTITY, TransformationKind.CONTRAST_INCREMENT}, entropy=b"session")


class TestCameraSession:

    def test_capture_and_verify(self, camera, genesis):
        image, proof = camera.capture(genesis)
        assert image is genesis
        assert camera.verifier_session().verify(image, proof)
        assert camera.public_key == camera.bundle.verifying_key.public_key


class TestEditorSession:

    def test_edit(self, camera, genesis):
        i0, sig = camera.capture(genesis)
        verifier = camera.verifier_session()
        with camera.editor_session() as editor:
            i1, p1 = editor.edit(i0, sig, ContrastIncrement(1))
            i2, p2 = editor.edit(i1, p1, Identity())
        assert isinstance(p2, PCDProof)
        ok, reason = verifier.check(i2, p2)
        assert ok, reason
        assert "depth 2" in reason

    def test_edit_requires_transformation(self, camera, genesis):
        i0, sig = camera.capture(genesis)
        with camera.editor_session() as editor:
            with pytest.raises(ConfigurationError):
                editor.edit(i0, sig, "contrast:1")

    def test_prove_async(self, camera, genesis):
        i0, sig = camera.capture(genesis)
        with camera.editor_session() as editor:
            job = editor.prove_async(i0, sig, ContrastIncrement(4))
            i1, p1 = job.result(timeout=30)
            assert job.done()
            assert not job.cancelled()
        assert i1.pixels.tolist() == [[9, 9, 9]] * 3
        assert camera.verifier_session().verify(i1, p1)

    def test_independent_lineages_in_parallel(self, camera, genesis):
        images = [genesis.with_metadata(author=name) for name in ("A", "B", "C", "D")]
        with camera.editor_session(max_workers=4) as editor:
            jobs = [editor.prove_async(*camera.capture(img), ContrastIncrement(1)) for img in images]
            results = [job.result(timeout=30) for job in jobs]
        verifier = camera.verifier_session()
        assert all(verifier.verify(img, proof) for img, proof in results)

    def test_cancel_while_proving(self, camera, genesis):
        backend = SlowBackend()
        i0, sig = camera.capture(genesis)
        with camera.editor_session(backend=backend) as editor:
            job = editor.prove_async(i0, sig, ContrastIncrement(1))
            assert backend.started.wait(timeout=10)
            job.cancel()
            backend.release.set()
            with pytest.raises(ProvingCancelled):
                job.result(timeout=30)
            assert job.cancelled()

    def test_cancel_before_start(self, camera, genesis):
        backend = SlowBackend()
        i0, sig = camera.capture(genesis)
        with camera.editor_session(backend=backend, max_workers=1) as editor:
            first = editor.prove_async(i0, sig, ContrastIncrement(1))
            second = editor.prove_async(i0, sig, Identity())
            assert backend.started.wait(timeout=10)
            second.cancel()
            backend.release.set()
            with pytest.raises(ProvingCancelled):
                second.result(timeout=30)
            i1, p1 = first.result(timeout=30)
        assert camera.verifier_session().verify(i1, p1)

    def test_close_is_idempotent(self, camera):
        editor = camera.editor_session()
        editor.close()
        editor.close()
