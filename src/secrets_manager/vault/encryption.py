# Vault - Encryption Service
#
# Master password → Encryption key (PBKDF2-HMAC-SHA256)
# Project payload encryption (AES-256-GCM)
# Fresh salt + nonce on every encryption

import os
import json
import base64
import binascii
from dataclasses import dataclass
from typing import Any, Dict, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.backends import default_backend

from .errors import AuthenticationFailed, MalformedEnvelope


@dataclass(frozen=True)
class EncryptedEnvelope:
    """
    Persisted form of one encrypted project.

    All three fields are standard-alphabet base64 strings:
    - encrypted_data: AES-GCM ciphertext with the 16-byte tag appended
    - salt: 16 random bytes fed to PBKDF2
    - nonce: 12 random bytes used once for AES-GCM
    """
    encrypted_data: str
    salt: str
    nonce: str

    FIELDS = ("encrypted_data", "salt", "nonce")

    def to_dict(self) -> Dict[str, str]:
        """Convert to JSON-serializable dictionary."""
        return {
            "encrypted_data": self.encrypted_data,
            "salt": self.salt,
            "nonce": self.nonce,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "EncryptedEnvelope":
        """
        Reconstruct from a parsed JSON document.

        Raises:
            MalformedEnvelope: If data is not an object with the three string fields
        """
        if not isinstance(data, dict):
            raise MalformedEnvelope("Envelope must be a JSON object")

        values = {}
        for name in cls.FIELDS:
            value = data.get(name)
            if not isinstance(value, str):
                raise MalformedEnvelope(f"Envelope field '{name}' is missing or not a string")
            values[name] = value
        return cls(**values)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "EncryptedEnvelope":
        try:
            if isinstance(text, bytes):
                text = text.decode("utf-8")
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedEnvelope("Envelope is not valid JSON", cause=e) from e
        return cls.from_dict(data)


class EncryptionService:
    """
    Handles encryption/decryption of project payloads.

    Flow:
    1. Random salt + nonce from the OS RNG
    2. PBKDF2 derives 256-bit key from password + salt
    3. AES-256-GCM encrypts the payload (no associated data)
    4. Envelope carries salt + nonce so only the password is needed later

    The iteration count is part of the file format: envelopes do not record
    it, so changing it makes existing vaults undecryptable.
    """

    PBKDF2_ITERATIONS = 100_000
    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 16
    NONCE_LENGTH = 12  # 96-bit nonce for GCM
    TAG_LENGTH = 16

    @staticmethod
    def derive_key(password: str, salt: bytes) -> bytes:
        """
        Derive encryption key from password using PBKDF2-HMAC-SHA256.

        Args:
            password: User's master password
            salt: Random salt (stored in the envelope)

        Returns:
            256-bit encryption key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=EncryptionService.KEY_LENGTH,
            salt=salt,
            iterations=EncryptionService.PBKDF2_ITERATIONS,
            backend=default_backend()
        )

        return kdf.derive(password.encode('utf-8'))

    @staticmethod
    def encrypt(plaintext: bytes, password: str) -> EncryptedEnvelope:
        """
        Encrypt plaintext bytes under a password.

        Salt and nonce are regenerated on every call, so encrypting the same
        plaintext twice never produces the same envelope.

        Args:
            plaintext: Serialized project payload
            password: Master password

        Returns:
            EncryptedEnvelope with base64-encoded fields
        """
        salt = os.urandom(EncryptionService.SALT_LENGTH)
        nonce = os.urandom(EncryptionService.NONCE_LENGTH)

        key = EncryptionService.derive_key(password, salt)
        aesgcm = AESGCM(key)
        ciphertext = aesgcm.encrypt(nonce, plaintext, None)

        return EncryptedEnvelope(
            encrypted_data=EncryptionService.encode_for_storage(ciphertext),
            salt=EncryptionService.encode_for_storage(salt),
            nonce=EncryptionService.encode_for_storage(nonce),
        )

    @staticmethod
    def decrypt(envelope: EncryptedEnvelope, password: str) -> bytes:
        """
        Decrypt an envelope with a password.

        Args:
            envelope: Envelope produced by encrypt()
            password: Master password

        Returns:
            Decrypted plaintext bytes

        Raises:
            MalformedEnvelope: If base64 decoding fails or field lengths are wrong
            AuthenticationFailed: If the GCM tag does not verify (wrong password
                or tampered ciphertext; the two cases are not distinguished)
        """
        salt = EncryptionService._decode_field(envelope.salt, "salt")
        nonce = EncryptionService._decode_field(envelope.nonce, "nonce")
        ciphertext = EncryptionService._decode_field(envelope.encrypted_data, "encrypted_data")

        if len(salt) != EncryptionService.SALT_LENGTH:
            raise MalformedEnvelope(
                f"Salt must be {EncryptionService.SALT_LENGTH} bytes, got {len(salt)}"
            )
        if len(nonce) != EncryptionService.NONCE_LENGTH:
            raise MalformedEnvelope(
                f"Nonce must be {EncryptionService.NONCE_LENGTH} bytes, got {len(nonce)}"
            )
        if len(ciphertext) < EncryptionService.TAG_LENGTH:
            raise MalformedEnvelope("Ciphertext is shorter than the authentication tag")

        key = EncryptionService.derive_key(password, salt)
        aesgcm = AESGCM(key)
        try:
            return aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise AuthenticationFailed(cause=e) from None

    @staticmethod
    def validate_password(envelope: EncryptedEnvelope, password: str) -> bool:
        """Check whether password opens envelope, discarding the plaintext."""
        try:
            EncryptionService.decrypt(envelope, password)
        except (AuthenticationFailed, MalformedEnvelope):
            return False
        return True

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Encode binary data as standard base64 text."""
        return base64.b64encode(data).decode('ascii')

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode standard base64 text, rejecting non-alphabet characters."""
        return base64.b64decode(data.encode('ascii'), validate=True)

    @staticmethod
    def _decode_field(value: str, field_name: str) -> bytes:
        try:
            return EncryptionService.decode_from_storage(value)
        except (binascii.Error, ValueError) as e:
            raise MalformedEnvelope(f"Envelope field '{field_name}' is not valid base64", cause=e) from e
