import logging
import sys
from typing import Any, Callable, Dict, Generic, Hashable, Iterator, Optional, Set, Tuple, TypeVar, Union

from .exceptions import CapacityOverflow, ZeroUnavailable
from .hashing import BuildHasher, BuiltinHasher
from .typing import LookupKey, SupportsAdd

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")


class _Bucket(Generic[T, C]):
    __slots__ = ("item", "count")

    def __init__(self, item: T, count: C) -> None:
        self.item = item
        self.count = count


class OccupiedEntry(Generic[T, C]):

    """Handle to an item which is present in a multiset, see `HashMultiset.entry`.
    Only valid until the multiset is modified by other means.
    """

    def __init__(self, multiset: "HashMultiset[T, C]", key: Hashable, bucket: _Bucket[T, C]) -> None:
        self._multiset = multiset
        self._key = key
        self._bucket = bucket

    @property
    def key(self) -> T:
        """The stored item."""

        return self._bucket.item

    def get(self) -> C:
        return self._bucket.count

    def set(self, count: C) -> C:
        """Overwrites the count and returns the previous one."""

        old = self._bucket.count
        self._bucket.count = count
        return old

    def add(self, delta: C) -> C:
        self._bucket.count = self._bucket.count + delta  # type: ignore[operator]
        return self._bucket.count

    def remove(self) -> C:
        return self.remove_entry()[1]

    def remove_entry(self) -> Tuple[T, C]:
        del self._multiset._buckets[self._key]
        return self._bucket.item, self._bucket.count

    def __repr__(self) -> str:
        return f"OccupiedEntry({self._bucket.item!r}, {self._bucket.count!r})"


class VacantEntry(Generic[T, C]):

    """Handle to an item which is absent from a multiset, see `HashMultiset.entry`."""

    def __init__(self, multiset: "HashMultiset[T, C]", key: Hashable, item: T) -> None:
        self._multiset = multiset
        self._key = key
        self._item = item

    @property
    def key(self) -> T:
        return self._item

    def insert(self, count: C) -> C:
        self._multiset._add_bucket(self._key, _Bucket(self._item, count))
        return count

    def __repr__(self) -> str:
        return f"VacantEntry({self._item!r})"


class HashMultiset(Generic[T, C]):

    """A multiset (bag) which maps every distinct item to a count.

    The count type is up to the caller: `int` by default, but `float`, `Fraction`, `Decimal`
    or any other type supporting `+` works as well. `count_type` is called without arguments
    to create the zero of the count type, which is only needed by `multiplicity`, `cardinality`
    and `outer_join`.

    Items are bucketed by a pluggable hashing strategy (see `hashmultiset.hashing`).
    Queries accept any lookup view which compares equal to the stored item and
    is digested identically by the strategy.

    Entries are never removed implicitly. An item whose count drops to zero stays in the multiset
    (and counts towards `len()`) until it is removed with `remove_all` or filtered with `retain`.

    Example:
    >>> ms = HashMultiset()
    >>> ms.insert("a", 1)
    1
    >>> ms.insert("a", 2)
    3
    >>> ms.multiplicity("b")
    0
    """

    def __init__(
        self, capacity: int = 0, hasher: Optional[BuildHasher] = None, count_type: Callable[[], C] = int  # type: ignore[assignment]
    ) -> None:
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        if capacity > sys.maxsize:
            raise CapacityOverflow(capacity)

        self._buckets: Dict[Hashable, _Bucket[T, C]] = {}
        self._capacity = capacity
        self.hasher = hasher if hasher is not None else BuiltinHasher()
        self.count_type = count_type

    @classmethod
    def new(cls, count_type: Callable[[], C] = int) -> "HashMultiset[T, C]":  # type: ignore[assignment]
        return cls(0, None, count_type)

    @classmethod
    def with_capacity(cls, capacity: int, count_type: Callable[[], C] = int) -> "HashMultiset[T, C]":  # type: ignore[assignment]
        return cls(capacity, None, count_type)

    @classmethod
    def with_hasher(cls, hasher: BuildHasher, count_type: Callable[[], C] = int) -> "HashMultiset[T, C]":  # type: ignore[assignment]
        return cls(0, hasher, count_type)

    @classmethod
    def with_capacity_and_hasher(
        cls, capacity: int, hasher: BuildHasher, count_type: Callable[[], C] = int  # type: ignore[assignment]
    ) -> "HashMultiset[T, C]":
        return cls(capacity, hasher, count_type)

    def _find(self, item: LookupKey) -> Optional[_Bucket[T, C]]:
        return self._buckets.get(self.hasher.key(item))

    def _add_bucket(self, key: Hashable, bucket: _Bucket[T, C]) -> None:
        self._buckets[key] = bucket
        if len(self._buckets) > self._capacity:
            self._capacity = len(self._buckets)

    def zero(self) -> C:
        """Returns the additive identity of the count type."""

        try:
            return self.count_type()
        except TypeError as e:
            raise ZeroUnavailable(f"{self.count_type!r} cannot create a zero count without arguments") from e

    # capacity

    def capacity(self) -> int:
        """Number of entries the multiset is prepared to hold. Always at least `len()`.
        CPython dicts size themselves, so this is bookkeeping of the requested capacity.
        """

        return self._capacity

    def reserve(self, additional: int) -> None:
        """Makes room for at least `additional` more entries."""

        if additional < 0:
            raise ValueError("additional must be non-negative")

        required = len(self._buckets) + additional
        if required > sys.maxsize:
            raise CapacityOverflow(required)

        if required > self._capacity:
            logger.debug("Growing capacity from %d to %d", self._capacity, required)
            self._capacity = required

    def shrink_to_fit(self) -> None:
        self.shrink_to(0)

    def shrink_to(self, min_capacity: int) -> None:
        """Lowers the capacity to `max(len(), min_capacity)`. Never raises the capacity."""

        capacity = max(len(self._buckets), min_capacity)
        if capacity < self._capacity:
            logger.debug("Shrinking capacity from %d to %d", self._capacity, capacity)
            self._capacity = capacity

    # mutators

    def insert(self, item: T, multiplicity: C) -> C:
        """Adds `multiplicity` to the count of `item` and returns the new count.
        New items start with a count of `multiplicity`. Counts are accumulated with `+`,
        so count objects passed in or shared with copies are never modified.
        """

        key = self.hasher.key(item)
        bucket = self._buckets.get(key)
        if bucket is None:
            self._add_bucket(key, _Bucket(item, multiplicity))
            return multiplicity

        count: SupportsAdd = bucket.count  # type: ignore[assignment]
        bucket.count = count + multiplicity
        return bucket.count

    def entry(self, item: T) -> Union[OccupiedEntry[T, C], VacantEntry[T, C]]:
        """Returns a handle for in-place manipulation of the count of `item`.

        Example, decrement and drop the item when no occurrence is left:
        >>> e = ms.entry("a")
        >>> if isinstance(e, OccupiedEntry) and e.add(-1) <= 0:
        ...     e.remove()
        """

        key = self.hasher.key(item)
        bucket = self._buckets.get(key)
        if bucket is None:
            return VacantEntry(self, key, item)
        return OccupiedEntry(self, key, bucket)

    def remove_all(self, item: LookupKey) -> Optional[C]:
        """Removes `item` regardless of its count and returns that count.
        Returns None if `item` was not present.
        """

        bucket = self._buckets.pop(self.hasher.key(item), None)
        if bucket is None:
            return None
        return bucket.count

    def clear(self) -> None:
        self._buckets.clear()

    def retain(self, predicate: Callable[[T, C], bool]) -> None:
        """Keeps only the items for which `predicate(item, count)` is true.
        `predicate` is meant to filter, it receives the count only for reading.
        """

        remove = [key for key, b in self._buckets.items() if not predicate(b.item, b.count)]
        for key in remove:
            del self._buckets[key]

        if remove:
            logger.debug("Dropped %d of %d entries", len(remove), len(remove) + len(self._buckets))

    def drain(self) -> Iterator[Tuple[T, C]]:
        """Removes all entries and returns an iterator over them.
        The multiset is empty once this method returns, the capacity is kept.
        """

        buckets = list(self._buckets.values())
        self._buckets.clear()
        return ((b.item, b.count) for b in buckets)

    # queries

    def get(self, item: LookupKey) -> Optional[C]:
        bucket = self._find(item)
        if bucket is None:
            return None
        return bucket.count

    def get_key_value(self, item: LookupKey) -> Optional[Tuple[T, C]]:
        """Returns the stored item and its count.
        The stored item can differ from the lookup view `item`, e.g. `1` for `1.0`.
        """

        bucket = self._find(item)
        if bucket is None:
            return None
        return bucket.item, bucket.count

    def multiplicity(self, item: LookupKey) -> C:
        """Returns the count of `item` or zero if it's not present."""

        bucket = self._find(item)
        if bucket is None:
            return self.zero()
        return bucket.count

    def cardinality(self) -> C:
        """Returns the sum of all counts."""

        return sum((b.count for b in self._buckets.values()), self.zero())  # type: ignore[arg-type, return-value]

    def len(self) -> int:
        """Number of distinct items. See `cardinality` for the number of occurrences."""

        return len(self._buckets)

    def is_empty(self) -> bool:
        return not self._buckets

    def iter(self) -> Iterator[Tuple[T, C]]:
        return ((b.item, b.count) for b in self._buckets.values())

    def items(self) -> Iterator[T]:
        return (b.item for b in self._buckets.values())

    def counts(self) -> Iterator[C]:
        return (b.count for b in self._buckets.values())

    def into_items(self) -> Iterator[T]:
        return (item for item, _ in self.drain())

    def into_counts(self) -> Iterator[C]:
        return (count for _, count in self.drain())

    def into_set(self) -> Set[T]:
        """Empties the multiset and returns its distinct items.
        The items must be hashable by `hash()`, regardless of the strategy of the multiset.
        """

        if self.hasher.transparent:
            items = set(self._buckets)
            self._buckets.clear()
            return items

        return set(self.into_items())

    def outer_join(self, other: "HashMultiset[T, C]") -> Iterator[Tuple[T, C, C]]:
        """Yields `(item, multiplicity in self, multiplicity in other)` for every item of both multisets.
        Each item is yielded once, the side it's missing from reports zero.
        """

        for b in self._buckets.values():
            yield b.item, b.count, other.multiplicity(b.item)

        for item, count in other.iter():
            if item not in self:
                yield item, self.zero(), count

    def copy(self) -> "HashMultiset[T, C]":
        """Returns a shallow copy. Hasher and count type are shared, the counts themselves are not copied."""

        out: HashMultiset[T, C] = type(self)(self._capacity, self.hasher, self.count_type)
        out._buckets = {key: _Bucket(b.item, b.count) for key, b in self._buckets.items()}
        return out

    __copy__ = copy

    # protocols

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[T]:
        return self.items()

    def __contains__(self, item: Any) -> bool:
        return self.hasher.key(item) in self._buckets

    def __getitem__(self, item: LookupKey) -> C:
        """Same as `get`, but raises KeyError if `item` is not present."""

        bucket = self._find(item)
        if bucket is None:
            raise KeyError(item)
        return bucket.count

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, HashMultiset):
            return NotImplemented

        if len(self) != len(other):
            return False

        for b in self._buckets.values():
            try:
                theirs = other._find(b.item)
            except TypeError:  # not digestible by the strategy of `other`
                return False
            if theirs is None or not theirs.count == b.count:
                return False

        return True

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        pairs = ", ".join(f"{b.item!r}: {b.count!r}" for b in self._buckets.values())
        return f"{type(self).__name__}({{{pairs}}})"
