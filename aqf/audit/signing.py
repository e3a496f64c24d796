# Author: Futhark1393
# Description: Ed25519 signatures over the hashes.csv record set.
# The signed payload is a canonical digest of the manifest records (sorted by
# path), so the signature vouches for which files were hashed to which values,
# independent of row order or line endings in the CSV.

import os
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

from aqf.core.hashing import StreamHasher
from aqf.core.manifest import SIGNATURE_SUFFIX, HashRecord, read_manifest

KEY_BASENAME = "aqf_signing"
PAYLOAD_PREFIX = b"aqf-manifest-v1:"


def manifest_digest(records: list[HashRecord]) -> str:
    """SHA-256 over the canonical record set: one ``path NUL sha256 LF`` line per file, sorted by path."""
    hasher = StreamHasher()
    for record in sorted(records, key=lambda r: r.path):
        hasher.update(f"{record.path}\0{record.sha256}\n".encode("utf-8"))
    return hasher.sha256_hex


def _payload(records: list[HashRecord]) -> bytes:
    return PAYLOAD_PREFIX + manifest_digest(records).encode("ascii")


def _write_key(path: str, data: bytes, mode: int) -> None:
    with open(path, "wb") as f:
        f.write(data)
    os.chmod(path, mode)


def generate_signing_keypair(output_dir: str) -> tuple[str, str]:
    """
    Generate an Ed25519 keypair for manifest signing under *output_dir*.

    The private key is written 0600, the public key 0644.
    Returns (private_key_path, public_key_path).
    """
    private_key = Ed25519PrivateKey.generate()
    priv_path = os.path.join(output_dir, f"{KEY_BASENAME}.key")
    pub_path = os.path.join(output_dir, f"{KEY_BASENAME}.pub")

    _write_key(
        priv_path,
        private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()),
        0o600,
    )
    _write_key(
        pub_path,
        private_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo),
        0o644,
    )
    return priv_path, pub_path


def _load_key(path: str, expected: type, private: bool):
    with open(path, "rb") as f:
        data = f.read()
    key = load_pem_private_key(data, password=None) if private else load_pem_public_key(data)
    if not isinstance(key, expected):
        raise TypeError(f"Expected {expected.__name__}, got {type(key).__name__}")
    return key


def sign_manifest(
    manifest_path: str, private_key_path: str, records: list[HashRecord] | None = None
) -> str:
    """
    Sign the record set of *manifest_path* and write ``<manifest>.sig``.

    *records* may be passed when the caller just built the manifest;
    otherwise they are read back from disk. Returns the signature path.
    """
    private_key = _load_key(private_key_path, Ed25519PrivateKey, private=True)
    if records is None:
        records = read_manifest(manifest_path)

    sig_path = manifest_path + SIGNATURE_SUFFIX
    with open(sig_path, "wb") as f:
        f.write(private_key.sign(_payload(records)))
    return sig_path


def verify_manifest_signature(
    manifest_path: str, sig_path: str, public_key_path: str
) -> tuple[bool, str]:
    """Check ``<manifest>.sig`` against the records currently in *manifest_path*."""
    for label, path in (
        ("Manifest", manifest_path),
        ("Signature file", sig_path),
        ("Public key", public_key_path),
    ):
        if not os.path.exists(path):
            return False, f"{label} not found: {path}"

    try:
        public_key = _load_key(public_key_path, Ed25519PublicKey, private=False)
        records = read_manifest(manifest_path)
        with open(sig_path, "rb") as f:
            signature = f.read()
        public_key.verify(signature, _payload(records))
    except InvalidSignature:
        return False, "Signature verification failed: manifest records or signature were modified."
    except (OSError, TypeError, ValueError) as e:
        return False, f"Signature verification failed: {e}"

    return True, f"Digital signature is valid for {len(records)} manifest records."
