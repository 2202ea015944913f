"""PhotoProof configuration

All tunables live here. Every value can be overridden with a
``PHOTOPROOF_<NAME>`` environment variable.
"""

import os


def _env_int(name, default):
    raw = os.environ.get(f"PHOTOPROOF_{name}")
    return int(raw) if raw else default


# =============================================================================
# IMAGE MODEL
# =============================================================================

MIN_PIXEL = 0
MAX_PIXEL = 255
DEFAULT_IMAGE_SIZE = _env_int("IMAGE_SIZE", 16)   # N of an N x N image
DEFAULT_FILL_VALUE = 5                            # "constant" fill policy
AUTHOR_FIELD = "author"

# =============================================================================
# KEY STORAGE
# =============================================================================

KEYS_DIR = os.environ.get("PHOTOPROOF_KEYS_DIR", "keys")
SIGNING_KEY_FILE = "camera_secret.key"
PUBLIC_KEY_FILE = "camera_public.key"
PROVING_KEY_FILE = "pcd_proving.key"
VERIFYING_KEY_FILE = "pcd_verifying.key"

# =============================================================================
# PROVING
# =============================================================================

PROVER_WORKERS = _env_int("PROVER_WORKERS", 2)    # background proving threads
SETUP_ENTROPY_BYTES = 32                          # Ed25519 seed length
