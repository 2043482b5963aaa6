"""Unit Tests for the field cipher - key derivation, envelopes, tamper surface

Run: pytest tests/security/
"""
import pytest

from feedback_vault.security.cipher import (
    CipherKey,
    FieldCipher,
    MalformedCiphertext,
    decrypt,
    derive_key,
    encrypt,
)


@pytest.fixture
def key():
    return derive_key("operator-secret")


def test_derive_key_is_deterministic_256_bit(key):
    again = derive_key("operator-secret")
    assert again == key
    assert len(key.material) == 32
    assert derive_key("other-secret") != key


def test_derive_key_rejects_empty_passphrase():
    with pytest.raises(ValueError):
        derive_key("")


def test_key_repr_hides_material(key):
    assert key.material.hex() not in repr(key)
    assert str(key.material) not in repr(key)


def test_cipher_key_requires_32_bytes():
    with pytest.raises(ValueError):
        CipherKey(b"too-short")


@pytest.mark.parametrize("plaintext", [
    "great",
    "",
    "exactly sixteen!",
    "multi\nline comment with 'quotes' and \"doubles\"",
    "ünïcödé ✓ 日本語 🎉",
    "x" * 1000,
])
def test_round_trip(plaintext, key):
    assert decrypt(encrypt(plaintext, key), key) == plaintext


def test_encrypt_is_not_deterministic(key):
    first = encrypt("great", key)
    second = encrypt("great", key)
    assert first != second
    assert first.split(":")[0] != second.split(":")[0]


def test_envelope_shape(key):
    iv_hex, cipher_hex = encrypt("great", key).split(":")
    assert len(iv_hex) == 32
    assert len(cipher_hex) % 32 == 0
    int(iv_hex, 16)
    int(cipher_hex, 16)


@pytest.mark.parametrize("envelope", [
    "great",                           # legacy plaintext, no delimiter
    "zz" * 16 + ":" + "00" * 16,       # IV not hex
    "00" * 16 + ":nothex",             # ciphertext not hex
    "00" * 8 + ":" + "00" * 16,        # IV too short
    "00" * 16 + ":",                   # empty ciphertext
])
def test_decrypt_rejects_malformed_envelopes(envelope, key):
    with pytest.raises(MalformedCiphertext):
        decrypt(envelope, key)


def test_decrypt_rejects_non_string(key):
    with pytest.raises(MalformedCiphertext):
        decrypt(None, key)


def test_truncated_ciphertext_raises(key):
    envelope = encrypt("a comment long enough for two blocks", key)
    truncated = envelope[:-2]  # one byte short of a block multiple
    with pytest.raises(MalformedCiphertext):
        decrypt(truncated, key)


def _flip_iv_byte(envelope, index, mask=0x01):
    iv_hex, cipher_hex = envelope.split(":")
    iv = bytearray.fromhex(iv_hex)
    iv[index] ^= mask
    return iv.hex() + ":" + cipher_hex


def test_iv_tamper_silently_garbles_first_block(key):
    """No MAC: flipping an IV bit flips the same plaintext bit"""
    tampered = _flip_iv_byte(encrypt("great", key), 0)
    assert decrypt(tampered, key) == "freat"


def test_padding_tamper_raises(key):
    # "great" pads with eleven 0x0b bytes; flipping the IV's last byte breaks them
    tampered = _flip_iv_byte(encrypt("great", key), 15)
    with pytest.raises(MalformedCiphertext):
        decrypt(tampered, key)


def test_wrong_key_never_returns_plaintext(key):
    envelope = encrypt("great", key)
    try:
        result = decrypt(envelope, derive_key("different"))
    except MalformedCiphertext:
        return
    assert result != "great"


def test_field_cipher_binds_key():
    cipher = FieldCipher.from_passphrase("operator-secret")
    envelope = cipher.encrypt("great")
    assert "great" not in envelope
    assert cipher.decrypt(envelope) == "great"
    assert decrypt(envelope, derive_key("operator-secret")) == "great"
    assert cipher.self_test() is True


def _flip_cipher_byte(envelope, index, mask=0x01):
    iv_hex, cipher_hex = envelope.split(":")
    encrypted = bytearray.fromhex(cipher_hex)
    encrypted[index] ^= mask
    return iv_hex + ":" + encrypted.hex()


def test_final_block_tamper_is_detected(key):
    """Garbling the last block scrambles the padding; a valid pad by chance is ~1/256 per flip"""
    plaintext = "a comment long enough for two blocks"
    envelope = encrypt(plaintext, key)
    block_count = len(envelope.split(":")[1]) // 32

    raised = 0
    for offset in range(16):
        tampered = _flip_cipher_byte(envelope, (block_count - 1) * 16 + offset)
        try:
            assert decrypt(tampered, key) != plaintext
        except MalformedCiphertext:
            raised += 1
    assert raised > 0


def test_first_block_tamper_never_returns_plaintext(key):
    plaintext = "twenty byte comment!"  # two blocks once padded
    envelope = encrypt(plaintext, key)
    assert len(envelope.split(":")[1]) == 64

    tampered = _flip_cipher_byte(envelope, 0)
    try:
        result = decrypt(tampered, key)
    except MalformedCiphertext:
        return
    assert result != plaintext


def test_hex_segments_with_whitespace_are_rejected(key):
    iv_hex, cipher_hex = encrypt("great", key).split(":")
    spaced_iv = " ".join(iv_hex[i:i + 2] for i in range(0, len(iv_hex), 2))
    with pytest.raises(MalformedCiphertext):
        decrypt(spaced_iv + ":" + cipher_hex, key)
    with pytest.raises(MalformedCiphertext):
        decrypt(iv_hex + ":" + cipher_hex[:32] + "\n" + cipher_hex[32:], key)
