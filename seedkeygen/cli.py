"""
seedkeygen - Command Line Interface

Usage:
    seedkeygen generate [-o id] [--format pkcs8] [--no-phrase]
    seedkeygen recover  [-o id] [--format pkcs8]     # asks for the phrase
    seedkeygen public   KEYFILE [--format pkcs8]     # prints the public key
    seedkeygen split    -k 3 -n 5                    # prints a recovery kit
    seedkeygen combine                               # reads shares from stdin

Secrets are read with getpass (never from argv) and printed at most once.
"""

import argparse
import getpass
import sys

from . import __version__
from .crypto import PEM_FORMATS, PEM_MODERN, RSA_MODULUS_BITS, public_key_fingerprint, public_key_to_pem
from .errors import KeygenError
from .keygen import DEFAULT_RECORD_PATH, Keygen
from .logging_config import setup_logging
from .memory import SecretBuffer
from .recovery import combine_phrase_shares, print_recovery_kit, split_phrase


def print_phrase(phrase: SecretBuffer):
    """Print the recovery phrase exactly once, 3 words per line"""
    words = phrase.text().split()
    print("\n" + "=" * 60)
    print("  RECOVERY PHRASE (WRITE IT DOWN - NOT SHOWN AGAIN)")
    print("=" * 60)
    for i in range(0, len(words), 3):
        line = "  ".join(f"{i + j + 1:2}. {w:<10}" for j, w in enumerate(words[i:i + 3]))
        print(f"  {line}")
    print("=" * 60 + "\n")


def read_phrase() -> SecretBuffer:
    return SecretBuffer.from_text(getpass.getpass("Recovery phrase: "))


def print_keypair_summary(path, fingerprint, public_pem):
    print(f"\n✓ Key record written to {path}")
    print(f"  Fingerprint: {fingerprint}\n")
    print(public_pem, end="")


def cmd_generate(args) -> int:
    keygen = Keygen(args.output, args.format, include_phrase=not args.no_phrase)
    print(f"Generating {RSA_MODULUS_BITS}-bit RSA key pair (this can take a few seconds)...")
    phrase, keypair = keygen.generate()
    with phrase:
        fingerprint = public_key_fingerprint(keypair.public_key)
        public_pem = public_key_to_pem(keypair.public_key, args.format)
        path = keygen.store(keypair, phrase)
        if args.no_phrase:
            print_phrase(phrase)
    print_keypair_summary(path, fingerprint, public_pem)
    if not args.no_phrase:
        print(f"\n! The recovery phrase is stored only in {path}; it is not shown.")
        print("  Keep that file safe, or back the phrase up with: seedkeygen split")
    return 0


def cmd_recover(args) -> int:
    keygen = Keygen(args.output, args.format)
    with read_phrase() as phrase:
        print(f"Re-deriving {RSA_MODULUS_BITS}-bit RSA key pair...")
        keypair = keygen.recover(phrase)
        fingerprint = public_key_fingerprint(keypair.public_key)
        public_pem = public_key_to_pem(keypair.public_key, args.format)
        path = keygen.store(keypair, phrase)
    print_keypair_summary(path, fingerprint, public_pem)
    return 0


def cmd_public(args) -> int:
    keypair = Keygen(args.keyfile).load()
    print(public_key_to_pem(keypair.public_key, args.format), end="")
    keypair.wipe()
    return 0


def cmd_split(args) -> int:
    with read_phrase() as phrase:
        try:
            shares = split_phrase(phrase, args.k, args.n)
        except ValueError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2
    print(print_recovery_kit(shares, args.k))
    return 0


def cmd_combine(args) -> int:
    print("Enter shares, one per line; finish with an empty line:")
    shares = []
    for line in sys.stdin:
        line = line.strip()
        if not line:
            break
        shares.append(line)
    with combine_phrase_shares(shares) as phrase:
        print_phrase(phrase)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seedkeygen",
        description="Deterministic RSA-2048 key pairs from a 12-word recovery phrase",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_format(p):
        p.add_argument("--format", choices=PEM_FORMATS, default=PEM_MODERN,
                       help="pkcs1 = RSA PRIVATE/PUBLIC KEY, pkcs8 = PRIVATE/PUBLIC KEY")

    p = sub.add_parser("generate", help="new phrase + key pair, written to a record file "
                       "(the record is the only copy of the phrase unless --no-phrase)")
    p.add_argument("-o", "--output", default=DEFAULT_RECORD_PATH, help="record file path")
    p.add_argument("--no-phrase", action="store_true",
                   help="leave the phrase out of the file and print it once instead "
                        "(default: the phrase is written to the file and never printed)")
    add_format(p)
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("recover", help="re-derive the key pair from a phrase")
    p.add_argument("-o", "--output", default=DEFAULT_RECORD_PATH, help="record file path")
    add_format(p)
    p.set_defaults(func=cmd_recover)

    p = sub.add_parser("public", help="print the public key of a record or private key file")
    p.add_argument("keyfile")
    add_format(p)
    p.set_defaults(func=cmd_public)

    p = sub.add_parser("split", help="split the phrase into k-of-n backup shares")
    p.add_argument("-k", type=int, required=True, help="shares needed to recover")
    p.add_argument("-n", type=int, required=True, help="shares to create")
    p.set_defaults(func=cmd_split)

    p = sub.add_parser("combine", help="rebuild the phrase from backup shares")
    p.set_defaults(func=cmd_combine)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        return args.func(args)
    except KeygenError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
