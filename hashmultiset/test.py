from functools import wraps
from itertools import product
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, TypeVar
from unittest import TestCase

T = TypeVar("T")
U = TypeVar("U")


class MyTestCase(TestCase):
    def assertUnorderedSeqEqual(self, first: Iterable, second: Iterable, msg: Optional[str] = None) -> None:
        first = sorted(first)
        second = sorted(second)
        self.assertEqual(first, second, msg)

    def assertPairsEqual(
        self, first: Iterable[Tuple[T, U]], second: Mapping[T, U], msg: Optional[str] = None
    ) -> None:
        """Compares iterated (item, count) pairs against a mapping, ignoring the order
        and requiring each item to occur only once.
        """

        seen = {}
        for item, count in first:
            self.assertNotIn(item, seen, msg)
            seen[item] = count
        self.assertEqual(dict(second), seen, msg)

    def assertMultisetEqual(self, multiset: Any, truth: Mapping[T, U], msg: Optional[str] = None) -> None:
        """Checks the items, counts and length of `multiset` against `truth`."""

        self.assertEqual(len(truth), len(multiset), msg)
        self.assertPairsEqual(multiset.iter(), truth, msg)
        for item, count in truth.items():
            self.assertEqual(count, multiset.get(item), msg)


# also called: parameterize
def parametrize(*args_list: tuple) -> Callable[[Callable], Callable]:
    def decorator(func):
        @wraps(func)
        def inner(self):
            for args in args_list:
                with self.subTest(str(args)[:1000]):
                    if func(self, *args) is not None:
                        raise AssertionError

        return inner

    return decorator


def parametrize_product(*args_list: tuple) -> Callable[[Callable], Callable]:
    def decorator(func):
        @wraps(func)
        def inner(self):
            for args in product(*args_list):
                with self.subTest(str(args)):
                    if func(self, *args) is not None:
                        raise AssertionError

        return inner

    return decorator
