"""
seedkeygen - Error Types

Every failure the library can raise is one of these. Each error names the
pipeline stage that failed. Messages never carry secret material (phrase
words, seed bytes, PEM text).

    KeygenError
    ├── InvalidMnemonic      (mnemonic)  bad word count / unknown word / checksum
    ├── KeyGenerationFailed  (keypair)   RSA search ran out of randomness budget
    ├── EncodingFailed       (export)    PEM serialization or parsing failed
    └── PersistenceFailed    (persist)   record could not be written
"""

from typing import Optional


class KeygenError(Exception):
    """Base class for all seedkeygen failures."""

    stage = "keygen"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.stage}: {self.message}"


class InvalidMnemonic(KeygenError):
    """
    Recovery phrase rejected.

    reason is one of:
    - "word_count": not exactly 12 words
    - "unknown_word": a word is not in the English wordlist
    - "checksum": embedded checksum does not match
    - "shares": backup shares could not be combined
    """

    stage = "mnemonic"

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class KeyGenerationFailed(KeygenError):
    """Prime search failed. Retrying with the same seed fails identically."""

    stage = "keypair"


class EncodingFailed(KeygenError):
    stage = "export"


class PersistenceFailed(KeygenError):
    stage = "persist"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
