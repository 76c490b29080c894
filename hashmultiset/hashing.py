import hashlib
import logging
import secrets
from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable, Iterable, Optional, Union

from .exceptions import UnencodableItem

logger = logging.getLogger(__name__)

_PY2_MULT = 1000003


def _to_pysigned(x: int, bits: int) -> int:
    mask = (1 << bits) - 1
    x &= mask
    signbit = 1 << (bits - 1)
    return x - (1 << bits) if x & signbit else x


def py2_hash_ucs_4(data: Union[str, bytes], bits: int = 64) -> int:
    """Calculate the non-randomized Python `hash()` as used in Python 2.
    Both 32-bit and 64-bit hashes are supported.

    Only UCS-4 (wide) build hashes are reproduced (the default on Linux).
    The intermediate value is truncated to `bits` after every step, like the C `long` it emulates.
    """

    if not isinstance(data, (str, bytes)):
        raise TypeError("only str and bytes are supported")

    if bits not in (32, 64):
        raise ValueError("only 32 or 64 bits are supported")

    if not data:
        return 0

    mask = (1 << bits) - 1
    if isinstance(data, str):
        codes = list(map(ord, data))
    else:
        codes = list(data)

    x = (codes[0] << 7) & mask
    for cp in codes:
        x = ((_PY2_MULT * x) ^ cp) & mask

    x ^= len(data)
    x = _to_pysigned(x, bits)
    if x == -1:
        x = -2
    return x


def encode_item(item: Any) -> bytes:
    """Converts `item` to bytes for digesting. Items which compare equal are encoded equally,
    so `1`, `1.0` and `True` all share an encoding.
    """

    if isinstance(item, str):
        return b"s" + item.encode("utf-8", "surrogatepass")
    elif isinstance(item, bytes):
        return b"b" + item
    elif isinstance(item, int):
        return b"i" + str(int(item)).encode("ascii")
    elif isinstance(item, float):
        if item.is_integer():
            return b"i" + str(int(item)).encode("ascii")
        return b"f" + item.hex().encode("ascii")
    elif item is None:
        return b"n"
    elif isinstance(item, tuple):
        return b"t" + _join_encoded(encode_item(i) for i in item)
    elif isinstance(item, frozenset):
        return b"z" + _join_encoded(sorted(encode_item(i) for i in item))

    raise UnencodableItem(f"Cannot encode items of type {type(item).__name__}, pass `encode` instead", item=item)


def _join_encoded(parts: Iterable[bytes]) -> bytes:
    # length prefixes keep ("ab", "c") and ("a", "bc") apart
    return b"".join(len(p).to_bytes(8, "big") + p for p in parts)


class _Slot:

    """Dict key for non-transparent strategies. Hashes by the cached digest
    and compares by the wrapped item, identical items first, like `dict` does.
    """

    __slots__ = ("item", "digest")

    def __init__(self, item: Any, digest: int) -> None:
        self.item = item
        self.digest = digest

    def __hash__(self) -> int:
        return self.digest

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, _Slot):
            return self.item is other.item or self.item == other.item
        return NotImplemented

    def __repr__(self) -> str:
        return f"_Slot({self.item!r}, {self.digest})"


class BuildHasher(ABC):

    """Hashing strategy of a multiset. Computes the digest used to bucket items.

    Items which compare equal must produce equal digests. Lookup views passed to the
    query methods of a multiset are digested with the same strategy as the stored items.
    """

    transparent = False

    @abstractmethod
    def hash_one(self, item: Any) -> int:
        raise NotImplementedError

    def key(self, item: Any) -> Hashable:
        """Returns the probe used to store and find `item` in the backing dict."""

        return _Slot(item, self.hash_one(item))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class BuiltinHasher(BuildHasher):

    """Python's own `hash()`. Items are stored directly without wrapping.
    `str` and `bytes` hashes are randomized per process (see `PYTHONHASHSEED`).
    """

    transparent = True

    def hash_one(self, item: Any) -> int:
        return hash(item)

    def key(self, item: Any) -> Hashable:
        return item


class RandomState(BuildHasher):

    """Mixes a random per-instance seed into the builtin hash, so different multisets bucket
    the same items differently. This does not protect against items chosen to collide
    under `hash()` itself, use `Blake2Hasher` for that.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        if seed is None:
            seed = secrets.randbits(64)
            logger.debug("Seeded %s with a random value", type(self).__name__)
        self.seed = seed

    def hash_one(self, item: Any) -> int:
        return hash((self.seed, item))


class DeterministicHasher(BuildHasher):

    """Reproducible digests across runs and interpreters. Strings and bytes use the Python 2 string hash,
    tuples and frozensets the Python 2 combiners. Other types use their builtin hash,
    which is only reproducible for types which don't hash strings themselves (numbers for example).
    """

    def __init__(self, bits: int = 64) -> None:
        if bits not in (32, 64):
            raise ValueError("only 32 or 64 bits are supported")

        self.bits = bits
        self.mask = (1 << bits) - 1

    def hash_one(self, item: Any) -> int:
        if isinstance(item, (str, bytes)):
            return py2_hash_ucs_4(item, self.bits)
        elif isinstance(item, tuple):
            return self._hash_tuple(item)
        elif isinstance(item, frozenset):
            return self._hash_frozenset(item)
        elif item is None:
            return 0x3C8B5A67  # hash(None) is address based before Python 3.12
        else:
            return _to_pysigned(hash(item), self.bits)

    def _hash_tuple(self, t: tuple) -> int:
        x = 0x345678
        mult = _PY2_MULT
        n = len(t)
        for element in t:
            n -= 1
            y = self.hash_one(element)
            x = ((x ^ y) * mult) & self.mask
            mult = (mult + 82520 + n + n) & self.mask

        x = _to_pysigned(x + 97531, self.bits)
        if x == -1:
            x = -2
        return x

    def _hash_frozenset(self, s: frozenset) -> int:
        x = (1927868237 * (len(s) + 1)) & self.mask
        for element in s:
            h = self.hash_one(element)
            x ^= ((h ^ (h << 16) ^ 89869747) * 3644798167) & self.mask

        x = _to_pysigned(x * 69069 + 907133923, self.bits)
        if x == -1:
            x = 590923713
        return x

    def __repr__(self) -> str:
        return f"DeterministicHasher(bits={self.bits})"


class Blake2Hasher(BuildHasher):

    """Keyed BLAKE2b digests. Without knowledge of the key, items cannot be chosen
    to collide, which protects multisets filled from untrusted input.

    `encode` converts items (and lookup views) to bytes, it defaults to `encode_item`.
    """

    digest_size = 8

    def __init__(self, key: Optional[bytes] = None, encode: Optional[Callable[[Any], bytes]] = None) -> None:
        if key is None:
            key = secrets.token_bytes(16)
            logger.debug("Generated random key for %s", type(self).__name__)
        elif len(key) > hashlib.blake2b.MAX_KEY_SIZE:
            raise ValueError(f"key must be at most {hashlib.blake2b.MAX_KEY_SIZE} bytes")

        self.secret = key
        self.encode = encode or encode_item

    def hash_one(self, item: Any) -> int:
        m = hashlib.blake2b(self.encode(item), digest_size=self.digest_size, key=self.secret)
        return int.from_bytes(m.digest(), "little", signed=True)
