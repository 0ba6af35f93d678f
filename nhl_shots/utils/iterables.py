"""
Small collection helpers
"""
from collections import defaultdict
from typing import Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def filter_by(items: Iterable[T], predicate: Callable[[T], bool]) -> List[T]:
    return [item for item in items if predicate(item)]


def find_first(items: Iterable[T], predicate: Callable[[T], bool]) -> Optional[T]:
    for item in items:
        if predicate(item):
            return item
    return None


def group_by(items: Iterable[T], key: Callable[[T], K]) -> Dict[K, List[T]]:
    grouped: Dict[K, List[T]] = defaultdict(list)
    for item in items:
        grouped[key(item)].append(item)
    return dict(grouped)
