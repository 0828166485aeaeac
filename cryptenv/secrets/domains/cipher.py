"""AES-256-GCM encryption of individual secret values.

Blob layout is nonce (12 bytes) || ciphertext || tag (16 bytes), base64-encoded
for storage in the JSON store.
"""
import base64
import binascii
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import AuthenticationFailed, CiphertextTooShort, InvalidBase64, InvalidUtf8
from .models import EncryptionKey, wipe

NONCE_SIZE = 12  # 96 bits recommended for AES-GCM
TAG_SIZE = 16


def encrypt(key: EncryptionKey, plaintext: str) -> str:
    """
    Encrypt a value with a fresh random nonce.

    Args:
        key: The installation key
        plaintext: Value to encrypt

    Returns:
        Base64-encoded nonce || ciphertext || tag
    """
    data = bytearray(plaintext.encode("utf-8"))
    try:
        nonce = secrets.token_bytes(NONCE_SIZE)
        encrypted = AESGCM(key.material).encrypt(nonce, bytes(data), None)
    finally:
        wipe(data)
    return base64.b64encode(nonce + encrypted).decode("ascii")


def decrypt(key: EncryptionKey, blob: str) -> bytearray:
    """
    Decrypt a stored blob.

    Returns:
        UTF-8 plaintext in a wipeable buffer owned by the caller

    Raises:
        InvalidBase64: If the blob is not valid base64
        CiphertextTooShort: If the decoded blob cannot hold a nonce and a tag
        AuthenticationFailed: If the tag does not verify (wrong key or tampering)
        InvalidUtf8: If the plaintext is not valid UTF-8
    """
    try:
        data = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidBase64(f"stored value is not valid base64: {e}")

    if len(data) < NONCE_SIZE + TAG_SIZE:
        raise CiphertextTooShort(f"stored value is too short ({len(data)} bytes)")

    try:
        plaintext = bytearray(AESGCM(key.material).decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None))
    except InvalidTag:
        raise AuthenticationFailed("decryption failed (wrong key or corrupted data)")

    try:
        plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        wipe(plaintext)
        raise InvalidUtf8(f"decrypted value is not valid utf8: {e}")
    return plaintext
