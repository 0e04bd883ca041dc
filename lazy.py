"""
Single-pass collection facade over a lazy sequence.

LazyBag lets you hand a generator (rows streamed from a database, numbers
produced on demand, lines of a file) to code that expects a collection,
without pulling the whole sequence into memory first.

Only one major traversal is supported: iter(), stream(), to_list() or
to_array() hand out the contents once, and nothing is kept for a second
pass. Mutators never walk the sequence. Removals install a filter over what
is still to come and add()/add_all() concatenate onto it, so a True return
means "this may change what is handed out later" and False means "this
cannot change anything".

len() reports how many elements were handed out so far. Membership tests
are refused: they would either consume the sequence or load all of it.
"""

import array
import itertools
import logging
import threading
from collections import deque
from collections.abc import Collection, Iterator
from enum import Enum
from typing import Any, Callable, Generic, Iterable, List, Optional, Tuple, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

_tags = itertools.count(1)
_MISSING = object()


class UnsupportedOperationError(NotImplementedError):
    """Raised by search operations the bag refuses to perform."""
    pass


class SinglePassError(RuntimeError):
    """Raised when iteration is requested after the contents were handed out."""
    pass


class SizeStrategy(Enum):
    """How size() answers."""
    DELIVERED = "delivered"      # elements handed out so far
    MATERIALIZE = "materialize"  # handed out so far + everything still pending


def _closer_of(iterable: Any) -> Optional[Callable[[], None]]:
    close = getattr(iterable, "close", None)
    return close if callable(close) else None


def _matches(item: Any, target: Any) -> bool:
    """Identity-or-equality test used by remove(). None only matches None."""
    if item is target:
        return True
    if item is None or target is None:
        return False
    try:
        if hash(item) != hash(target):
            return False
    except TypeError:
        pass  # unhashable, fall through to ==
    return item == target


class _Segments:
    """Iterator over a queue of iterables.

    Appending is O(1) and never nests. Running dry is not final: once
    another segment is appended, pulling resumes with it.
    """

    def __init__(self, *iterables: Iterable):
        self._queue = deque(iterables)
        self._current = iter(())

    def append(self, iterable: Iterable) -> None:
        self._queue.append(iterable)

    def __iter__(self) -> "_Segments":
        return self

    def __next__(self) -> Any:
        while True:
            try:
                return next(self._current)
            except StopIteration:
                if not self._queue:
                    self._current = iter(())
                    raise
                self._current = iter(self._queue.popleft())


class _Source:
    """A lazy view held in the bag's source slot.

    ``tag`` changes whenever the view is replaced (filters, materialization),
    ``version`` whenever something is appended to it. A cursor that ran dry
    only closes the view if both still match what it saw.
    """

    def __init__(self, items: Iterable, closers=()):
        self.tag = next(_tags)
        self.version = 0
        self.segments = _Segments(items)
        self.closers = list(closers)
        self.closed = False

    def append(self, items: Iterable, closers=()) -> None:
        self.segments.append(items)
        self.closers.extend(closers)
        self.version += 1

    def derive(self, items: Iterable) -> "_Source":
        """New view that inherits the resources of this one."""
        return _Source(items, self.closers)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for close in self.closers:
            close()


class _Cursor:
    """Pull handle over a source with one element of look-ahead."""

    def __init__(self, source: _Source):
        self.tag = source.tag
        self._iterator = source.segments
        self._pending = _MISSING

    def has_next(self) -> bool:
        if self._pending is _MISSING:
            self._pending = next(self._iterator, _MISSING)
        return self._pending is not _MISSING

    def next(self) -> Any:
        if self._pending is not _MISSING:
            item, self._pending = self._pending, _MISSING
            return item
        return next(self._iterator)

    def remaining(self):
        """Lazily yield whatever has not been pulled yet, peeked element first."""
        while self.has_next():
            yield self.next()


class _BagIterator(Iterator, Generic[T]):
    """Forward iterator that does the bag's accounting as elements flow past.

    It asks the bag for the current cursor on every pull, so elements added
    or filtered out while iterating are honoured. It stops for good once the
    source it was created for is exhausted or the bag is cleared.
    """

    def __init__(self, bag: "LazyBag[T]", epoch: int):
        self._bag = bag
        self._epoch = epoch
        self._done = False

    def __iter__(self) -> "_BagIterator[T]":
        return self

    def __next__(self) -> T:
        if self._done:
            raise StopIteration
        bag = self._bag
        while True:
            found = bag._cursor_for(self._epoch)
            if found is None:
                break
            cursor, version = found
            if cursor.has_next():
                item = cursor.next()
                bag._record_delivery()
                return item
            if bag._close_exhausted(cursor.tag, version):
                break
            # the source was swapped or appended to while we looked; pull again
        self._done = True
        raise StopIteration


class LazyBag(Collection, Generic[T]):
    """Collection facade over a lazy, single-pass sequence.

    Parameters
    ----------
    source : Iterable, optional
        The lazy sequence to wrap. If it has a ``close()`` method (generators,
        file objects) it is called once the sequence is exhausted or the bag
        is cleared.
    on_close : callable, optional
        Extra callback run alongside ``source.close()``.

    Raises
    ------
    SinglePassError
        If iteration is requested once the contents were handed out.
    UnsupportedOperationError
        On membership tests (``in``, ``contains_all``).
    ValueError
        If a required collection or predicate is None.

    Notes
    -----
    Two threads driving iteration on the same bag at once is undefined. The
    lock only keeps the internal state consistent; it does not make the bag
    a queue. The wrapped source itself may fan out however it likes.
    """

    def __init__(
        self,
        source: Optional[Iterable[T]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._source: Optional[_Source] = None
        self._cursor: Optional[_Cursor] = None
        self._known_not_empty = False
        self._count = 0
        self._epoch = 0
        if source is not None:
            closers = [c for c in (_closer_of(source), on_close) if c is not None]
            self._source = _Source(source, closers)

    # ---------- state machine ----------

    def _remaining(self) -> Iterable:
        # caller holds the lock and has checked that a source exists
        if self._cursor is not None:
            return self._cursor.remaining()
        return self._source.segments

    def _install(self, items: Iterable) -> None:
        # caller holds the lock; replaces the current view
        self._source = self._source.derive(items)
        if self._cursor is not None:
            self._cursor = _Cursor(self._source)

    def _get_cursor(self) -> Optional[_Cursor]:
        with self._lock:
            if self._source is None:
                return None
            if self._cursor is None:
                self._cursor = _Cursor(self._source)
            return self._cursor

    def _cursor_for(self, epoch: int) -> Optional[Tuple[_Cursor, int]]:
        """Current cursor and source version, or None once ``epoch`` is over."""
        with self._lock:
            if epoch != self._epoch:
                return None
            cursor = self._get_cursor()
            if cursor is None:
                return None
            return cursor, self._source.version

    def _close_exhausted(self, tag: int, version: int) -> bool:
        """Close the current source if it is the one that ran dry.

        False means the view was replaced or appended to since the cursor
        came up empty, so there may be more to pull.
        """
        with self._lock:
            source = self._source
            if source is None:
                return True
            if source.tag != tag or source.version != version:
                return False
            self._source = None
            self._cursor = None
            self._epoch += 1
            delivered = self._count
        logger.debug(f"Source {tag} exhausted after {delivered} delivered elements")
        source.close()
        return True

    def _record_delivery(self) -> None:
        with self._lock:
            self._known_not_empty = True
            self._count += 1

    # ---------- composition (lazy) ----------

    def _add_items(self, items: Iterable[T], closers=()) -> bool:
        with self._lock:
            if self._source is None:
                self._source = _Source(items, closers)
            else:
                self._source.append(items, closers)
        return True

    def _retain_if(self, predicate: Callable[[T], bool]) -> bool:
        with self._lock:
            if self._source is None:
                return False
            self._install(filter(predicate, self._remaining()))
        return True

    def add(self, item: T) -> bool:
        """Append one element after whatever is still pending. Always True."""
        return self._add_items((item,))

    def add_all(self, items: Iterable[T]) -> bool:
        """Append a whole (possibly lazy) sequence without consuming it.

        If ``items`` has a ``close()`` method it is released together with
        the rest of the bag's resources.
        """
        if items is None:
            raise ValueError("items must not be None")
        closer = _closer_of(items)
        return self._add_items(items, (closer,) if closer else ())

    def remove(self, target: Any) -> bool:
        """Suppress every later occurrence of ``target``.

        Elements already handed out are unaffected, and so are matching
        elements added after this call. Returns False only when there is
        nothing left that could be filtered; True does not mean a match exists.
        """
        return self._retain_if(lambda item: not _matches(item, target))

    def discard(self, target: Any) -> None:
        self.remove(target)

    def remove_all(self, collection: Collection) -> bool:
        if collection is None:
            raise ValueError("collection must not be None")
        return self._retain_if(lambda item: item not in collection)

    def retain_all(self, collection: Collection) -> bool:
        if collection is None:
            raise ValueError("collection must not be None")
        return self._retain_if(lambda item: item in collection)

    def remove_if(self, predicate: Callable[[T], bool]) -> bool:
        if predicate is None:
            raise ValueError("predicate must not be None")
        return self._retain_if(lambda item: not predicate(item))

    def clear(self) -> None:
        """Drop the source and the accounting; releases the source's resources."""
        with self._lock:
            source = self._source
            self._source = None
            self._cursor = None
            self._known_not_empty = False
            self._count = 0
            self._epoch += 1
        if source is not None:
            logger.debug(f"Bag cleared, releasing source {source.tag}")
            source.close()

    # ---------- consuming operations ----------

    def __iter__(self) -> Iterator:
        with self._lock:
            if self._source is None:
                raise SinglePassError("Only supports a single iteration")
            return _BagIterator(self, self._epoch)

    def stream(self) -> Iterator:
        """Instrumented view of what is still pending.

        Unlike iter() this never raises: a bag with nothing left gives an
        empty iterator. Elements pulled through it are counted the same way.
        """
        with self._lock:
            if self._source is None:
                return iter(())
            return _BagIterator(self, self._epoch)

    def is_empty(self) -> bool:
        """True when nothing has been handed out and nothing is pending.

        May pull one element from the source to find out; that element is
        kept for the next consumer and is not counted.
        """
        if self._known_not_empty:
            return False
        cursor = self._get_cursor()
        return cursor is None or not cursor.has_next()

    def __bool__(self) -> bool:
        return not self.is_empty()

    def to_list(self) -> List[T]:
        """Drain everything still pending into a list.

        This defeats the purpose of the bag and exists for APIs that insist
        on a concrete sequence. The whole remainder is held in memory.
        """
        return list(self.stream())

    def to_array(self, typecode: Optional[str] = None) -> Union[tuple, array.array]:
        """Drain into a tuple, or an ``array.array`` of ``typecode``.

        Builds the intermediate list first, so two full-size buffers exist
        at the same time. Expect MemoryError on very large sources.
        """
        items = self.to_list()
        if typecode is None:
            return tuple(items)
        return array.array(typecode, items)

    def __contains__(self, item: Any) -> bool:
        raise UnsupportedOperationError("This bag does not support search operations")

    def contains_all(self, collection: Iterable) -> bool:
        raise UnsupportedOperationError("This bag does not support search operations")

    def __len__(self) -> int:
        return self._count

    def size(self, strategy: SizeStrategy = SizeStrategy.DELIVERED) -> int:
        """Number of elements handed out since construction or clear().

        With ``SizeStrategy.MATERIALIZE`` the pending elements are buffered
        in memory first (not counted as delivered) and added to the result.
        Iteration afterwards still yields all of them, from the buffer.
        """
        if strategy is SizeStrategy.MATERIALIZE:
            return self._count + self._materialize()
        return self._count

    def _materialize(self) -> int:
        # Swap in a list-backed view first and fill it outside the lock, so
        # add()/clear() from other threads are not blocked by a long drain.
        # Anything composed meanwhile lands after (or filters) the buffer.
        buffered: List[T] = []
        with self._lock:
            source = self._source
            if source is None:
                return 0
            pending = self._remaining()
            self._source = _Source(buffered)
            self._cursor = None
        try:
            buffered.extend(pending)
        finally:
            source.close()
        logger.debug(f"Materialized {len(buffered)} pending elements of source {source.tag}")
        return len(buffered)

    # ---------- introspection ----------

    @property
    def known_not_empty(self) -> bool:
        return self._known_not_empty

    @property
    def closed(self) -> bool:
        """True when there is no source left to pull from."""
        return self._source is None

    def __repr__(self) -> str:
        name = self.__class__.__name__
        return f"{name}(count={self._count}, closed={self.closed})"
