"""
seedkeygen - Secret Memory Module

Self-clearing buffers for the recovery phrase, the seed and private key PEM.

How it works:
- Secret bytes live in a mutable bytearray owned by a SecretBuffer
- wipe() overwrites every byte with zero in place
- The buffer is a context manager: leaving the block wipes it, also when
  an exception is propagating
- __del__ wipes as a last resort

Limits (best effort only):
- str and bytes objects are immutable and cannot be overwritten. Anything
  passed through text() or handed to a third-party library as str stays in
  memory until the garbage collector reclaims it.
- Nothing here protects against swap or cold-boot attacks.
"""

import hmac
from typing import Union


BytesLike = Union[bytes, bytearray, memoryview]


class SecretBuffer:
    """
    Mutable byte buffer that zeroes itself when no longer needed.

    Usage:
        with SecretBuffer.from_text(phrase) as buf:
            seed = derive(buf.view())
        # buf is all zeros here

    Copies are independent: wiping one never clears another.
    """

    __slots__ = ("_data", "_wiped")

    def __init__(self, data: BytesLike = b""):
        self._data = bytearray(data)
        self._wiped = False

    @classmethod
    def from_text(cls, text: str) -> "SecretBuffer":
        """Wrap the UTF-8 encoding of text."""
        return cls(text.encode("utf-8"))

    @classmethod
    def adopt(cls, data: bytearray) -> "SecretBuffer":
        """Take ownership of an existing bytearray without copying it."""
        buf = cls()
        buf._data = data
        return buf

    @classmethod
    def coerce(cls, value: Union[str, BytesLike, "SecretBuffer"]) -> "SecretBuffer":
        """
        Return an independent SecretBuffer holding value.

        SecretBuffer inputs are copied, so the caller keeps ownership of the
        original and must wipe it separately.
        """
        if isinstance(value, SecretBuffer):
            return value.copy()
        if isinstance(value, str):
            return cls.from_text(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(value)
        raise TypeError(f"Cannot hold {type(value).__name__} as a secret")

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def view(self) -> memoryview:
        """Zero-copy read access. Do not keep the view past wipe()."""
        self._check_alive()
        return memoryview(self._data)

    def text(self) -> str:
        """
        Decode as UTF-8.

        The returned str is an immutable copy that wipe() cannot reach. Only
        use it to hand the secret to a library that requires str.
        """
        self._check_alive()
        return self._data.decode("utf-8")

    def copy(self) -> "SecretBuffer":
        self._check_alive()
        return SecretBuffer(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        self._check_alive()
        return bytes(self._data)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def wiped(self) -> bool:
        return self._wiped

    def wipe(self) -> None:
        """Overwrite with zeros. Safe to call more than once."""
        # Same-length slice assignment writes into the existing allocation
        self._data[:] = bytes(len(self._data))
        self._wiped = True

    def raw(self) -> bytearray:
        """
        The underlying bytearray, for APIs that need a real bytearray.

        Mutating it mutates the secret; it is zeroed by wipe() like the rest.
        """
        return self._data

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __del__(self):
        try:
            self.wipe()
        except AttributeError:
            # __init__ failed before _data was set
            pass

    def _check_alive(self) -> None:
        if self._wiped:
            raise ValueError("SecretBuffer has been wiped")

    # -------------------------------------------------------------------------
    # Comparison / display
    # -------------------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if isinstance(other, SecretBuffer):
            other = other._data
        elif not isinstance(other, (bytes, bytearray, memoryview)):
            return NotImplemented
        # Constant-time: do not leak how many leading bytes matched
        return hmac.compare_digest(self._data, other)

    __hash__ = None

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._data)} bytes"
        return f"<SecretBuffer {state}>"
