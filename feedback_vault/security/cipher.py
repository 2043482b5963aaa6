"""Field Cipher - AES-256-CBC protection for the feedback comment

Self-Explanatory: Derive a key once, then encrypt/decrypt one text field.
Why: Comments must never reach DynamoDB in plaintext.
How: SHA-256(passphrase) -> 256-bit key; fresh random IV per call; PKCS7 padding.

Envelope format (self-contained, only the key is needed to open it):
    <iv hex>:<ciphertext hex>

Caveat: CBC without a MAC gives confidentiality only. A flipped bit in the
IV segment silently flips the same bit of the first plaintext block, while
corrupting the final block almost always breaks the padding and raises
MalformedCiphertext. Move to AES-GCM if integrity ever matters.
"""

import os
import re
from dataclasses import dataclass, field

import structlog
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = structlog.get_logger()

KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16
BLOCK_SIZE_BITS = 128
DELIMITER = ":"
HEX_SEGMENT = re.compile(r"[0-9a-fA-F]*")


class MalformedCiphertext(ValueError):
    """Envelope could not be decoded or decrypted"""


@dataclass(frozen=True)
class CipherKey:
    """Process-scoped key material. Immutable; repr never shows the bytes."""
    material: bytes = field(repr=False)

    def __post_init__(self):
        if len(self.material) != KEY_LENGTH:
            raise ValueError(f"Cipher key must be {KEY_LENGTH} bytes")


def derive_key(passphrase: str) -> CipherKey:
    """Derive the AES key from an operator-controlled passphrase

    Plain SHA-256, no salt or stretching: the passphrase is a deployment
    secret, not a user password. Same passphrase -> same key.
    """
    if not passphrase:
        raise ValueError("Passphrase must not be empty")
    digest = hashes.Hash(hashes.SHA256())
    digest.update(passphrase.encode("utf-8"))
    return CipherKey(digest.finalize())


def encrypt(plaintext: str, key: CipherKey) -> str:
    """Encrypt text into an `ivHex:cipherHex` envelope

    Args:
        plaintext: Text to protect
        key: Derived cipher key

    Returns:
        Envelope string; differs on every call for the same input
    """
    iv = os.urandom(IV_LENGTH)
    padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key.material), modes.CBC(iv)).encryptor()
    encrypted = encryptor.update(padded) + encryptor.finalize()
    return iv.hex() + DELIMITER + encrypted.hex()


def decrypt(envelope: str, key: CipherKey) -> str:
    """Open an envelope produced by encrypt()

    Raises:
        MalformedCiphertext on a missing delimiter, bad hex, wrong IV size,
        bad block length, invalid padding or non-UTF-8 output
    """
    if not isinstance(envelope, str) or DELIMITER not in envelope:
        raise MalformedCiphertext("Envelope is missing the IV delimiter")

    iv_hex, cipher_hex = envelope.split(DELIMITER, 1)
    # bytes.fromhex tolerates whitespace; envelopes never contain any
    if not (HEX_SEGMENT.fullmatch(iv_hex) and HEX_SEGMENT.fullmatch(cipher_hex)):
        raise MalformedCiphertext("Envelope segments are not valid hex")
    try:
        iv = bytes.fromhex(iv_hex)
        encrypted = bytes.fromhex(cipher_hex)
    except ValueError as e:
        raise MalformedCiphertext("Envelope segments are not valid hex") from e

    if len(iv) != IV_LENGTH:
        raise MalformedCiphertext(f"IV must be {IV_LENGTH} bytes, got {len(iv)}")
    if not encrypted:
        raise MalformedCiphertext("Ciphertext segment is empty")

    try:
        decryptor = Cipher(algorithms.AES(key.material), modes.CBC(iv)).decryptor()
        padded = decryptor.update(encrypted) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode("utf-8")
    except ValueError as e:
        # covers partial blocks, bad padding and UnicodeDecodeError
        raise MalformedCiphertext(f"Ciphertext could not be decrypted: {e}") from e


class FieldCipher:
    """Cipher bound to a single derived key"""

    def __init__(self, key: CipherKey):
        self._key = key

    @classmethod
    def from_passphrase(cls, passphrase: str) -> "FieldCipher":
        cipher = cls(derive_key(passphrase))
        logger.info("Field cipher initialized", algorithm="AES-256-CBC")
        return cipher

    def encrypt(self, plaintext: str) -> str:
        return encrypt(plaintext, self._key)

    def decrypt(self, envelope: str) -> str:
        return decrypt(envelope, self._key)

    def self_test(self) -> bool:
        """Round-trip a known value; used by the readiness check"""
        sample = "feedback-vault-self-test"
        try:
            return self.decrypt(self.encrypt(sample)) == sample
        except MalformedCiphertext as e:
            logger.error("Cipher self-test failed", error=str(e))
            return False
