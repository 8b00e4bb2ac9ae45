import mock
import pytest

from credcrypt import DecryptionFailed, InvalidParameters
from credcrypt.cipher import NONCE_SIZE, TAG_SIZE, decrypt, encrypt


def flip_bit(data, bit):
    data = bytearray(data)
    data[bit // 8] ^= 1 << (bit % 8)
    return bytes(data)


@pytest.mark.parametrize(
    "plaintext",
    [b"", b"a", b"banana: true\napple: false\n", bytes(range(256)) * 64],
)
@pytest.mark.parametrize("aad", [b"", b"credentials.yml.enc"])
def test_decrypt_reverses_encrypt(key, plaintext, aad):
    nonce, ciphertext = encrypt(plaintext, key, aad)
    assert len(nonce) == NONCE_SIZE
    assert len(ciphertext) == len(plaintext) + TAG_SIZE
    assert decrypt(ciphertext, nonce, key, aad) == plaintext


def test_missing_associated_data_is_empty(key):
    nonce, ciphertext = encrypt(b"secret", key, None)
    assert decrypt(ciphertext, nonce, key) == b"secret"
    assert decrypt(ciphertext, nonce, key, b"") == b"secret"


def test_flipping_any_ciphertext_bit_fails_authentication(key):
    nonce, ciphertext = encrypt(b"db_password: hunter2", key)
    for bit in range(len(ciphertext) * 8):
        with pytest.raises(DecryptionFailed):
            decrypt(flip_bit(ciphertext, bit), nonce, key)


def test_flipping_any_nonce_bit_fails_authentication(key):
    nonce, ciphertext = encrypt(b"db_password: hunter2", key)
    for bit in range(NONCE_SIZE * 8):
        with pytest.raises(DecryptionFailed):
            decrypt(ciphertext, flip_bit(nonce, bit), key)


def test_other_associated_data_fails_authentication(key):
    nonce, ciphertext = encrypt(b"secret", key, b"one")
    with pytest.raises(DecryptionFailed):
        decrypt(ciphertext, nonce, key, b"two")


def test_wrong_key_and_tampering_are_indistinguishable(key, other_key):
    nonce, ciphertext = encrypt(b"secret", key)
    with pytest.raises(DecryptionFailed) as wrong_key:
        decrypt(ciphertext, nonce, other_key)
    with pytest.raises(DecryptionFailed) as tampered:
        decrypt(flip_bit(ciphertext, 0), nonce, key)
    with pytest.raises(DecryptionFailed) as truncated:
        decrypt(ciphertext[:TAG_SIZE - 1], nonce, key)
    assert str(wrong_key.value) == str(tampered.value) == str(truncated.value)
    assert "secret" not in str(wrong_key.value)


def test_nonces_are_fresh_for_every_encryption(key):
    nonces = set()
    for _ in range(10000):
        nonce, _ = encrypt(b"same plaintext", key)
        nonces.add(nonce)
    assert len(nonces) == 10000


def test_same_plaintext_yields_different_ciphertexts(key):
    assert encrypt(b"same", key)[1] != encrypt(b"same", key)[1]


@pytest.mark.parametrize("length", [0, 16, 24, 31, 33, 64])
def test_invalid_key_size_is_rejected_before_using_the_cipher(length):
    with mock.patch("credcrypt.cipher.AESGCM") as aesgcm:
        with pytest.raises(InvalidParameters) as e:
            encrypt(b"secret", b"k" * length)
        assert str(e.value) == (
            f"Invalid key size: expected 32 bytes, got {length}"
        )
        with pytest.raises(InvalidParameters):
            decrypt(b"c" * 32, b"n" * NONCE_SIZE, b"k" * length)
    assert not aesgcm.called


@pytest.mark.parametrize("length", [0, 8, 11, 13, 16])
def test_invalid_nonce_size_is_rejected_before_using_the_cipher(key, length):
    with mock.patch("credcrypt.cipher.AESGCM") as aesgcm:
        with pytest.raises(InvalidParameters) as e:
            decrypt(b"c" * 32, b"n" * length, key)
    assert "nonce" in str(e.value)
    assert not aesgcm.called
