"""
seedkeygen - Key Pipeline Module

This file handles:
- The end-to-end derivation: phrase → seed → generator → key pair
- Assembling and parsing the exported key record
- Writing/reading the record file (owner-only permissions, atomic replace)
- The Keygen class, which carries all options explicitly (no globals)

Record format (plain text, field order and labels are fixed):

    Seedphrase: <12 words, or empty>
    Private Key: -----BEGIN ... PRIVATE KEY-----
    ...
    -----END ... PRIVATE KEY-----

    Public Key: -----BEGIN ... PUBLIC KEY-----
    ...
    -----END ... PUBLIC KEY-----

(PEM blocks end with a newline, hence the blank line between the keys.)
"""

import logging
import os
import tempfile
from typing import Optional, Tuple, Union

from . import crypto, recovery
from .crypto import (
    KeyPair,
    PEM_FORMATS,
    PEM_MODERN,
    RSA_MODULUS_BITS,
    private_key_to_pem,
    public_key_to_pem,
)
from .errors import EncodingFailed, PersistenceFailed
from .memory import SecretBuffer
from .recovery import PhraseLike


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

DEFAULT_RECORD_PATH = "id"
RECORD_FILE_MODE = 0o600        # owner read/write only

PHRASE_LABEL = b"Seedphrase: "
PRIVATE_LABEL = b"\nPrivate Key: "
PUBLIC_LABEL = b"\nPublic Key: "


# =============================================================================
# Derivation
# =============================================================================

def keypair_from_phrase(phrase: PhraseLike, modulus_bits: int = RSA_MODULUS_BITS) -> KeyPair:
    """
    Derive the key pair belonging to a recovery phrase.

    The seed and generator are wiped on every exit path, including
    InvalidMnemonic and KeyGenerationFailed.

    Raises:
        InvalidMnemonic: Phrase failed validation (no key material produced)
        KeyGenerationFailed: Prime search failed for this seed
    """
    with recovery.seed_from_phrase(phrase) as seed:
        with crypto.generator_from_seed(seed) as generator:
            return crypto.keypair_from_generator(generator, modulus_bits)


def mnemonic_and_keypair() -> Tuple[SecretBuffer, KeyPair]:
    """
    Create a fresh recovery phrase and its key pair.

    Returns:
        (phrase, keypair). The caller owns the phrase and must wipe it.
    """
    phrase = recovery.generate_phrase()
    try:
        keypair = keypair_from_phrase(phrase)
    except BaseException:
        phrase.wipe()
        raise
    return phrase, keypair


# =============================================================================
# Record Format
# =============================================================================

def assemble_record(
    phrase: Optional[PhraseLike],
    private_pem: Union[str, SecretBuffer],
    public_pem: str,
) -> SecretBuffer:
    """
    Build the text record that gets persisted.

    The buffer is sized up front and filled in place, so no partial copies of
    the secret parts are left behind by bytearray growth.

    The phrase is written in canonical form (lowercase, single spaces), so
    "MEAT  Morning ..." and "meat morning ..." give the same record.

    Args:
        phrase: Recovery phrase, or None to leave the field empty
        private_pem: Private key PEM
        public_pem: Public key PEM

    Returns:
        UTF-8 record in a SecretBuffer

    Raises:
        InvalidMnemonic: If phrase is given but does not validate
    """
    public_bytes = public_pem.encode("ascii")
    phrase_buf = recovery.canonical_phrase(phrase) if phrase is not None else SecretBuffer(b"")
    with phrase_buf, \
            SecretBuffer.coerce(private_pem) as private_buf:
        parts = (
            PHRASE_LABEL, phrase_buf.view(),
            PRIVATE_LABEL, private_buf.view(),
            PUBLIC_LABEL, public_bytes,
        )
        record = SecretBuffer(bytearray(sum(len(p) for p in parts)))
        data = record.raw()
        pos = 0
        for part in parts:
            data[pos:pos + len(part)] = part
            pos += len(part)
    return record


def parse_record(record: Union[str, bytes, bytearray, SecretBuffer]) -> Tuple[Optional[SecretBuffer], SecretBuffer, str]:
    """
    Split a record back into its three fields.

    Returns:
        (phrase or None if the field is empty, private PEM, public PEM)

    Raises:
        EncodingFailed: If the labels are missing or out of order
    """
    with SecretBuffer.coerce(record) as buf:
        data = buf.raw()
        if not data.startswith(PHRASE_LABEL):
            raise EncodingFailed("record does not start with the 'Seedphrase:' field")

        private_at = data.find(PRIVATE_LABEL)
        public_at = data.find(PUBLIC_LABEL, private_at + 1) if private_at >= 0 else -1
        if private_at < 0 or public_at < 0:
            raise EncodingFailed("record is missing the 'Private Key:' or 'Public Key:' field")

        # Slicing a bytearray copies; adopt() keeps those copies wipeable
        phrase = SecretBuffer.adopt(data[len(PHRASE_LABEL):private_at]) \
            if private_at > len(PHRASE_LABEL) else None
        private_pem = SecretBuffer.adopt(data[private_at + len(PRIVATE_LABEL):public_at])
        try:
            public_pem = data[public_at + len(PUBLIC_LABEL):].decode("ascii")
        except UnicodeDecodeError as e:
            private_pem.wipe()
            if phrase is not None:
                phrase.wipe()
            raise EncodingFailed("public key field is not ASCII PEM text") from e

    return phrase, private_pem, public_pem


# =============================================================================
# Record File I/O
# =============================================================================

def store_record(record: SecretBuffer, path: str) -> str:
    """
    Write a record to disk.

    Why write-then-rename?
    - The file appears complete or not at all (no half-written keys)
    - The temp file is created 0600 from the start, so the secret is never
      readable by other users, even briefly

    Returns:
        The path written

    Raises:
        PersistenceFailed: Permissions, missing directory, disk full, ...
    """
    directory = os.path.dirname(os.path.abspath(path))
    try:
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".seedkeygen-", suffix=".tmp")
    except OSError as e:
        raise PersistenceFailed(
            f"cannot create a file in {directory}: {e.strerror}", path=path
        ) from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(record.view())
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, RECORD_FILE_MODE)
        os.replace(tmp_path, path)
    except OSError as e:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass  # already gone
        raise PersistenceFailed(
            f"cannot write key record to {path}: {e.strerror}", path=path
        ) from e

    logger.debug("Stored %d-byte key record at %s", len(record), path)
    return path


def read_record(path: str) -> SecretBuffer:
    """
    Read a record (or any PEM file) into a SecretBuffer.

    Unbuffered reads straight into the secret bytearray, so the file content
    is not also held in an io buffer.

    Raises:
        PersistenceFailed: If the file cannot be read
    """
    try:
        with open(path, "rb", buffering=0) as f:
            size = os.fstat(f.fileno()).st_size
            buf = SecretBuffer(bytearray(size))
            view = buf.view()
            filled = 0
            while filled < size:
                n = f.readinto(view[filled:])
                if not n:
                    break
                filled += n
    except OSError as e:
        raise PersistenceFailed(f"cannot read {path}: {e.strerror}", path=path) from e

    if filled < size:
        buf.wipe()
        raise PersistenceFailed(f"{path} changed size while reading", path=path)
    return buf


# =============================================================================
# KEYGEN CLASS
# =============================================================================

class Keygen:
    """
    Key pipeline with explicit options.

    Usage:
        # New identity
        keygen = Keygen("id", pem_format=PEM_LEGACY)
        phrase, keypair = keygen.generate()
        with phrase:
            keygen.store(keypair, phrase)

        # Restore from a written-down phrase
        keypair = keygen.recover("meat morning armed ...")

        # Public key from a private key file
        keypair = keygen.load("id")
    """

    def __init__(
        self,
        output_path: str = DEFAULT_RECORD_PATH,
        pem_format: str = PEM_MODERN,
        include_phrase: bool = True,
    ):
        """
        Args:
            output_path: Where store() writes the record
            pem_format: "pkcs1" (legacy RSA blocks) or "pkcs8" (modern envelope)
            include_phrase: Put the recovery phrase into the record
        """
        if pem_format not in PEM_FORMATS:
            raise ValueError(f"PEM format must be one of {PEM_FORMATS}, got {pem_format!r}")
        self.output_path = output_path
        self.pem_format = pem_format
        self.include_phrase = include_phrase

    def generate(self) -> Tuple[SecretBuffer, KeyPair]:
        """New phrase and key pair. Caller wipes the phrase."""
        return mnemonic_and_keypair()

    def recover(self, phrase: PhraseLike) -> KeyPair:
        return keypair_from_phrase(phrase)

    def export(self, keypair: KeyPair, phrase: Optional[PhraseLike] = None) -> SecretBuffer:
        """Build the record for keypair in this pipeline's PEM format."""
        if keypair.wiped:
            raise ValueError("key pair has already been wiped")

        public_pem = public_key_to_pem(keypair.public_key, self.pem_format)
        with private_key_to_pem(keypair.private_key, self.pem_format) as private_pem:
            return assemble_record(
                phrase if self.include_phrase else None,
                private_pem,
                public_pem,
            )

    def store(self, keypair: KeyPair, phrase: Optional[PhraseLike] = None,
              path: Optional[str] = None) -> str:
        """
        Export and write the record, then wipe the key pair.

        The key pair is consumed only once the record is safely on disk; on
        PersistenceFailed it is left intact so the caller can retry.

        Returns:
            The path written
        """
        target = path or self.output_path

        with self.export(keypair, phrase) as record:
            store_record(record, target)

        fingerprint = crypto.public_key_fingerprint(keypair.public_key)
        keypair.wipe()
        logger.info("Wrote key record to %s (%s)", target, fingerprint)
        return target

    def load(self, path: Optional[str] = None) -> KeyPair:
        """
        Load the private key from a record file or a bare private key PEM
        and pair it with its public key.
        """
        source = path or self.output_path
        with read_record(source) as content:
            if content.raw().startswith(PHRASE_LABEL):
                phrase, private_pem, _ = parse_record(content)
                if phrase is not None:
                    phrase.wipe()
                with private_pem:
                    private_key = crypto.load_private_key_pem(private_pem)
            else:
                private_key = crypto.load_private_key_pem(content)

        logger.debug("Loaded private key from %s", source)
        return crypto.keypair_from_private_key(private_key)
