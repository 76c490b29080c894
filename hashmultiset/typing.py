from typing import Any

from typing_extensions import Protocol  # typing.Protocol is available in Python 3.8+


class LookupKey(Protocol):

    """Anything which can be used to query a multiset in place of an owned item.
    It must compare equal to the stored item and produce the same digest under the
    hashing strategy of the multiset (for the default strategy: the same `hash()`).
    """

    def __eq__(self, other: Any) -> bool:
        ...

    def __hash__(self) -> int:
        ...


class SupportsAdd(Protocol):

    """Counts accumulated by `HashMultiset.insert`. `+=` falls back to `__add__`
    for immutable types like `int`.
    """

    def __add__(self, other: Any) -> Any:
        ...
