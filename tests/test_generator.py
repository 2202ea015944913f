"""Tests for key generation and the on-disk key store."""

import pytest

from photoproof import (
    BackendError,
    ConfigurationError,
    ContrastIncrement,
    SerializationError,
    TransformationKind,
    generate,
    prove,
    sign,
    verify,
)
from photoproof.backend import AttestationBackend
from photoproof.keys import (
    ProvingKey,
    VerificationContext,
    VerifyingKey,
    load_proving_key,
    load_public_key,
    load_signing_key,
    load_verifying_key,
    save_keys,
)


class TestGenerate:

    def test_bundle(self, genesis, contrast_bundle):
        pk, vk, sk = contrast_bundle
        assert pk.public_key == vk.public_key == sk.public_key
        assert pk.verifying_key == vk
        assert pk.n == 3
        assert pk.permissible_ids == (int(TransformationKind.CONTRAST_INCREMENT),)
        assert vk.backend == AttestationBackend.name

    def test_empty_permissible_set(self, genesis):
        with pytest.raises(ConfigurationError):
            generate(genesis, set())

    def test_unknown_kind(self, genesis):
        with pytest.raises(ConfigurationError):
            generate(genesis, {"sharpen"})

    def test_genesis_must_be_image(self):
        with pytest.raises(ConfigurationError):
            generate([[5, 5], [5, 5]], {TransformationKind.IDENTITY})

    def test_entropy_makes_setup_reproducible(self, genesis):
        a = generate(genesis, {TransformationKind.IDENTITY}, entropy=b"seed")
        b = generate(genesis, {TransformationKind.IDENTITY}, entropy=b"seed")
        c = generate(genesis, {TransformationKind.IDENTITY}, entropy=b"other")
        assert a.verifying_key.key == b.verifying_key.key
        assert a.verifying_key.key != c.verifying_key.key
        # fresh camera key each time
        assert a.signing_key.public_key != b.signing_key.public_key

    def test_setup_failure_is_backend_error(self, genesis):
        class BrokenSetup(AttestationBackend):
            def setup(self, circuit, entropy=None):
                raise ValueError("toxic waste not destroyed")

        with pytest.raises(BackendError) as info:
            generate(genesis, {TransformationKind.IDENTITY}, backend=BrokenSetup())
        assert isinstance(info.value.cause, ValueError)


class TestKeyStore:

    def test_save_and_load(self, tmp_path, genesis, contrast_bundle):
        paths = save_keys(contrast_bundle, str(tmp_path))
        assert set(paths) == {"signing_key", "public_key", "proving_key", "verifying_key"}

        signing_key = load_signing_key(str(tmp_path))
        proving_key = load_proving_key(str(tmp_path))
        verifying_key = load_verifying_key(str(tmp_path))
        assert signing_key.public_key == contrast_bundle.signing_key.public_key
        assert load_public_key(str(tmp_path)) == contrast_bundle.signing_key.public_key
        assert proving_key == contrast_bundle.proving_key
        assert verifying_key.fingerprint() == contrast_bundle.verifying_key.fingerprint()

        # a lineage survives the round trip through disk
        sig = sign(genesis, signing_key)
        i1 = ContrastIncrement(3).apply(genesis)
        proof = prove(sig, genesis, i1, ContrastIncrement(3), proving_key)
        assert verify(VerificationContext.from_verifying_key(verifying_key), i1, proof)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SerializationError):
            load_verifying_key(str(tmp_path))

    @pytest.mark.parametrize("data", [b"", b"[]", b"{}", b'{"key": "***"}'])
    def test_garbage_verifying_key(self, data):
        with pytest.raises(SerializationError):
            VerifyingKey.from_bytes(data)

    def test_garbage_proving_key(self):
        with pytest.raises(SerializationError):
            ProvingKey.from_bytes(b'{"backend": "attestation-ed25519"}')
