"""Tests for the Flask verification service."""

import pytest

from photoproof import ContrastIncrement, prove
from photoproof.proof import proof_to_dict
from web.app import create_app


@pytest.fixture
def client(contrast_bundle):
    app = create_app(verifying_key=contrast_bundle.verifying_key)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def edited(contrast_bundle, signed):
    i0, sig = signed(contrast_bundle)
    i1 = ContrastIncrement(1).apply(i0)
    return i1, prove(sig, i0, i1, ContrastIncrement(1), contrast_bundle.proving_key)


class TestVerifyEndpoint:

    def test_index(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.get_json()["service"] == "photoproof-verifier"
        assert resp.headers["Cache-Control"].startswith("no-cache")

    def test_verifying_key(self, client, contrast_bundle):
        resp = client.get("/verifying_key")
        assert resp.get_json()["fingerprint"] == contrast_bundle.verifying_key.fingerprint()

    def test_valid(self, client, edited):
        image, proof = edited
        resp = client.post("/verify", json={"image": image.to_dict(), "proof": proof_to_dict(proof)})
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["valid"] is True
        assert body["image_digest"] == image.digest()

    def test_tampered(self, client, edited):
        image, proof = edited
        payload = image.to_dict()
        payload["matrix"][0][0] = 7
        resp = client.post("/verify", json={"image": payload, "proof": proof_to_dict(proof)})
        assert resp.status_code == 200
        assert resp.get_json()["valid"] is False

    @pytest.mark.parametrize("payload", [
        None,
        {"image": {"matrix": [[1]]}},
        {"image": {"metadata": {}}, "proof": {"kind": "signature", "signature": ""}},
        {"image": {"matrix": [[1, 2]]}, "proof": {"kind": "signature", "signature": ""}},
        {"image": {"matrix": [[1]]}, "proof": {"kind": "zk"}},
    ])
    def test_malformed(self, client, payload):
        resp = client.post("/verify", json=payload)
        assert resp.status_code == 400

    def test_no_keys(self, tmp_path, edited):
        app = create_app(keys_dir=str(tmp_path))
        image, proof = edited
        client = app.test_client()
        assert client.get("/verifying_key").status_code == 503
        resp = client.post("/verify", json={"image": image.to_dict(), "proof": proof_to_dict(proof)})
        assert resp.status_code == 503
