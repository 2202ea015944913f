"""Pytest configuration and fixtures for PhotoProof tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from photoproof import (  # noqa: E402
    Image,
    TransformationKind,
    VerificationContext,
    generate,
    sign,
)


@pytest.fixture
def genesis():
    """3x3 image of all 5's, authored by A."""
    return Image.create(3, value=5, metadata={"author": "A"})


@pytest.fixture
def identity_bundle(genesis):
    return generate(genesis, {TransformationKind.IDENTITY}, entropy=b"identity-setup")


@pytest.fixture
def contrast_bundle(genesis):
    return generate(genesis, {TransformationKind.CONTRAST_INCREMENT}, entropy=b"contrast-setup")


@pytest.fixture
def editing_bundle(genesis):
    """Lineage allowing every transformation kind."""
    return generate(genesis, list(TransformationKind), entropy=b"editing-setup")


@pytest.fixture
def context_for():
    def _context(bundle):
        return VerificationContext.from_verifying_key(bundle.verifying_key)
    return _context


@pytest.fixture
def signed(genesis):
    def _signed(bundle, image=None):
        image = image if image is not None else genesis
        return image, sign(image, bundle.signing_key)
    return _signed
