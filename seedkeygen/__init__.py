"""
seedkeygen - Deterministic RSA Keys from a Recovery Phrase

Write down 12 words, get the same RSA-2048 key pair back any time.

Key Features:
- BIP-39 recovery phrase (12 words, 128-bit entropy, checksummed)
- Reproducible: phrase → seed → ChaCha20 stream → RSA prime search
- Two PEM flavours: PKCS#1 (legacy) and PKCS#8/SPKI (modern)
- Secrets held in self-wiping buffers, record files written 0600
- Optional k-of-n Shamir backup of the phrase (SLIP-0039)

Components:
- recovery.py: Phrase generation/validation, seed, backup shares
- crypto.py: Deterministic generator, key pair, PEM export/import
- keygen.py: Pipeline, record format and record file I/O
- memory.py: SecretBuffer (zeroization)
- errors.py: Error types
- cli.py: Command-line interface (uses built-in argparse)

Usage:
    from seedkeygen import mnemonic_and_keypair, keypair_from_phrase

    phrase, keypair = mnemonic_and_keypair()
    with phrase:
        again = keypair_from_phrase(phrase)
"""

__version__ = "0.3.0"

from .crypto import (
    PEM_LEGACY,
    PEM_MODERN,
    DeterministicGenerator,
    KeyPair,
    generator_from_seed,
    keypair_from_generator,
    keypair_from_private_key,
    load_private_key_pem,
    load_public_key_pem,
    private_key_to_pem,
    public_key_to_pem,
    to_pem,
)
from .errors import (
    EncodingFailed,
    InvalidMnemonic,
    KeyGenerationFailed,
    KeygenError,
    PersistenceFailed,
)
from .keygen import (
    Keygen,
    assemble_record,
    keypair_from_phrase,
    mnemonic_and_keypair,
    parse_record,
    store_record,
)
from .memory import SecretBuffer
from .recovery import (
    canonical_phrase,
    generate_phrase,
    is_valid_phrase,
    seed_from_phrase,
    validate_phrase,
)
