"""
seedkeygen - Recovery Phrase Module (BIP-39 + SLIP-39)

This file handles:
- Generating a fresh 12-word recovery phrase (128 bits of entropy)
- Validating caller-supplied phrases (word count, wordlist, checksum)
- Turning a phrase into the 64-byte BIP-39 seed
- Optional k-of-n backup: split the phrase entropy into Shamir shares

Phrase pipeline:
    entropy (16 bytes) → 12 words → PBKDF2-HMAC-SHA512 → seed (64 bytes)

The wordlist and checksum scheme come from the 'mnemonic' package (the
reference BIP-39 implementation). Shamir shares use SLIP-0039 via
'shamir_mnemonic'.

Every phrase and seed handed back to callers is a SecretBuffer; callers
should use them in a 'with' block so they are wiped afterwards.
"""

import logging
from typing import List, Union

from mnemonic import Mnemonic
from shamir_mnemonic import shamir
from shamir_mnemonic.utils import MnemonicError

from .errors import InvalidMnemonic
from .memory import SecretBuffer


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

LANGUAGE = "english"
MNEMONIC_STRENGTH = 128   # bits of entropy
MNEMONIC_WORDS = 12       # 132 bits / 11 bits per word
ENTROPY_SIZE = MNEMONIC_STRENGTH // 8
SEED_SIZE = 64            # PBKDF2-HMAC-SHA512 output
MAX_SHARES = 16           # SLIP-39 member limit

_MNEMO = Mnemonic(LANGUAGE)
_WORDSET = frozenset(_MNEMO.wordlist)

PhraseLike = Union[str, bytes, bytearray, SecretBuffer]


def _zero(*buffers: bytearray) -> None:
    for buf in buffers:
        buf[:] = bytes(len(buf))


# =============================================================================
# Phrase Generation / Validation
# =============================================================================

def generate_phrase() -> SecretBuffer:
    """
    Generate a new 12-word recovery phrase.

    Entropy comes from the OS CSPRNG (the 'mnemonic' package reads it through
    the 'secrets' module). The checksum is appended by the encoder, so the
    result always passes validate_phrase().

    Returns:
        SecretBuffer with the space-separated lowercase phrase
    """
    phrase = SecretBuffer.from_text(_MNEMO.generate(strength=MNEMONIC_STRENGTH))
    logger.debug("Generated new %d-word recovery phrase", MNEMONIC_WORDS)
    return phrase


def normalize_phrase(phrase: PhraseLike) -> SecretBuffer:
    """
    Canonical form of a phrase: lowercase, single spaces, no padding.

    "  Meat  morning\\tarmed ..." → "meat morning armed ..."

    Works on bytearrays end to end so every intermediate copy can be zeroed.
    """
    with SecretBuffer.coerce(phrase) as raw:
        lowered = raw.raw().lower()
        words = lowered.split()
        joined = bytearray(b" ").join(words)
        try:
            return SecretBuffer(joined)
        finally:
            _zero(lowered, joined, *words)


def _validate_canonical(canonical: SecretBuffer) -> None:
    words = canonical.raw().split()
    try:
        if len(words) != MNEMONIC_WORDS:
            raise InvalidMnemonic(
                f"expected {MNEMONIC_WORDS} words, got {len(words)}",
                reason="word_count",
            )

        for position, word in enumerate(words, 1):
            if word.decode("utf-8", "replace") not in _WORDSET:
                # Position only: the word itself may be part of a real phrase
                raise InvalidMnemonic(
                    f"word {position} is not in the {LANGUAGE} wordlist",
                    reason="unknown_word",
                )

        if not _MNEMO.check(canonical.text()):
            raise InvalidMnemonic("checksum does not match", reason="checksum")
    finally:
        _zero(*words)


def validate_phrase(phrase: PhraseLike) -> None:
    """
    Check a caller-supplied phrase.

    Checks, in order:
    1. Exactly 12 words
    2. Every word is in the English wordlist
    3. The 4-bit checksum embedded in the last word matches

    Raises:
        InvalidMnemonic: with reason "word_count", "unknown_word" or "checksum"
    """
    with normalize_phrase(phrase) as canonical:
        _validate_canonical(canonical)


def canonical_phrase(phrase: PhraseLike) -> SecretBuffer:
    """
    Validated phrase in its written form: 12 lowercase words, single spaces.

    Raises:
        InvalidMnemonic: If the phrase does not validate
    """
    canonical = normalize_phrase(phrase)
    try:
        _validate_canonical(canonical)
    except BaseException:
        canonical.wipe()
        raise
    return canonical


def is_valid_phrase(phrase: PhraseLike) -> bool:
    try:
        validate_phrase(phrase)
    except InvalidMnemonic:
        return False
    return True


# =============================================================================
# Seed Extraction
# =============================================================================

def seed_from_phrase(phrase: PhraseLike, passphrase: str = "") -> SecretBuffer:
    """
    Derive the 64-byte BIP-39 seed from a recovery phrase.

    seed = PBKDF2-HMAC-SHA512(password=phrase, salt="mnemonic" + passphrase,
                              iterations=2048)

    The phrase is validated again here even if the caller already did it:
    deriving a seed from a mistyped phrase would silently produce a
    different, unrecoverable key.

    Args:
        phrase: Recovery phrase (any whitespace/case, see normalize_phrase)
        passphrase: BIP-39 passphrase. The key pipeline always uses ""

    Returns:
        64-byte seed in a SecretBuffer

    Raises:
        InvalidMnemonic: If the phrase does not validate
    """
    with normalize_phrase(phrase) as canonical:
        _validate_canonical(canonical)
        seed = SecretBuffer(_MNEMO.to_seed(canonical.text(), passphrase))
    logger.debug("Derived %d-byte seed from recovery phrase", len(seed))
    return seed


# =============================================================================
# Backup Shares (SLIP-39)
# =============================================================================

def split_phrase(phrase: PhraseLike, k: int, n: int) -> List[str]:
    """
    Split a recovery phrase into n backup shares (need k to recover).

    The 16 bytes of phrase entropy (not the seed) are shared, so combining
    shares gives back the exact same 12 words.

    Args:
        phrase: Valid recovery phrase
        k: Threshold (minimum shares needed)
        n: Total number of shares to create

    Returns:
        List of n share mnemonics (space-separated SLIP-39 words)

    Security:
        - Any k shares reconstruct the phrase
        - k-1 shares give ZERO information
    """
    if k > n:
        raise ValueError(f"k ({k}) cannot be greater than n ({n})")

    if k < 2:
        raise ValueError("k must be at least 2")

    if n > MAX_SHARES:
        raise ValueError(f"n cannot exceed {MAX_SHARES} (SLIP-39 limit)")

    with normalize_phrase(phrase) as canonical:
        _validate_canonical(canonical)
        entropy = bytearray(_MNEMO.to_entropy(canonical.text()))

    try:
        # One group, k-of-n members inside it
        groups = shamir.generate_mnemonics(
            group_threshold=1,
            groups=[(k, n)],
            master_secret=bytes(entropy),
        )
    finally:
        _zero(entropy)

    logger.info("Split recovery phrase into %d shares (threshold %d)", n, k)
    return groups[0]


def combine_phrase_shares(shares: List[str]) -> SecretBuffer:
    """
    Rebuild the recovery phrase from k backup shares.

    Raises:
        InvalidMnemonic: reason "shares" if shares are invalid, inconsistent
            or fewer than the threshold
    """
    try:
        entropy = bytearray(shamir.combine_mnemonics(shares))
    except (MnemonicError, ValueError) as e:
        # Share text is secret too; keep it out of the message
        raise InvalidMnemonic("could not combine backup shares", reason="shares") from e

    try:
        if len(entropy) != ENTROPY_SIZE:
            raise InvalidMnemonic(
                f"shares hold {len(entropy)} bytes, expected {ENTROPY_SIZE}",
                reason="shares",
            )
        return SecretBuffer.from_text(_MNEMO.to_mnemonic(bytes(entropy)))
    finally:
        _zero(entropy)


def print_recovery_kit(shares: List[str], k: int) -> str:
    """
    Format backup shares for printing on paper.

    Returns:
        Formatted string ready for printing
    """
    output = []
    output.append("=" * 70)
    output.append("seedkeygen RECOVERY KIT")
    output.append("=" * 70)
    output.append(f"\nThreshold: Need {k} of {len(shares)} shares to recover")
    output.append("\nIMPORTANT:")
    output.append("- Store each share in a separate secure location")
    output.append(f"- Any {k} shares rebuild your recovery phrase (and so your key)")
    output.append(f"- Losing up to {len(shares) - k} shares is okay")
    output.append("- NEVER store all shares together!\n")
    output.append("=" * 70)

    for i, share in enumerate(shares, 1):
        output.append(f"\n\nSHARE {i} of {len(shares)}")
        output.append("-" * 70)
        output.append(share)
        output.append("\n" + "-" * 70)

    output.append("\n\nTo recover:")
    output.append("1. Run: seedkeygen combine")
    output.append(f"2. Enter any {k} shares, one per line, then an empty line")
    output.append("3. Run: seedkeygen recover, with the printed phrase\n")

    return "\n".join(output)
