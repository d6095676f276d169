"""
Logging configuration
Pipeline stages are logged but never include secret material
"""

import logging
import re
import sys

from mnemonic import Mnemonic


REDACTED = "[REDACTED]"

_PEM_BLOCK = re.compile(
    r"-----BEGIN [A-Z ]+-----.*?(?:-----END [A-Z ]+-----|$)", re.DOTALL
)
_WORD = re.compile(r"[A-Za-z]+")
_PHRASE_RUN = 12


class SecretRedactionFilter(logging.Filter):
    """
    Filter that redacts key material and recovery phrases.

    - Any PEM block (even a truncated one) is replaced
    - Any run of 12+ consecutive BIP-39 words is replaced
    """

    def __init__(self, name: str = ""):
        super().__init__(name)
        self._wordlist = frozenset(Mnemonic("english").wordlist)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = self.redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True

    def redact(self, text: str) -> str:
        text = _PEM_BLOCK.sub(REDACTED, text)
        return self._redact_phrases(text)

    def _redact_phrases(self, text: str) -> str:
        spans = []
        count = 0
        run_start = run_end = 0
        for match in _WORD.finditer(text):
            known = match.group().lower() in self._wordlist
            if known and count and not text[run_end:match.start()].strip():
                count += 1
                run_end = match.end()
                continue
            if count >= _PHRASE_RUN:
                spans.append((run_start, run_end))
            if known:
                count = 1
                run_start, run_end = match.span()
            else:
                count = 0
        if count >= _PHRASE_RUN:
            spans.append((run_start, run_end))

        for start, end in reversed(spans):
            text = text[:start] + REDACTED + text[end:]
        return text


def setup_logging(verbose: bool = False):
    """Configure CLI logging (stderr, so stdout stays clean for PEM output)"""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    handler.addFilter(SecretRedactionFilter())

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Clear existing handlers to avoid duplicates
    root.handlers = []
    root.addHandler(handler)

    logging.getLogger("seedkeygen").setLevel(logging.DEBUG if verbose else logging.INFO)
