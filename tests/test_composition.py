"""
Composition tests for LazyBag

add/remove/retain/filter are views over what is still pending: they never
walk the source themselves.
"""

from lazy import LazyBag


class TestRemoval:
    """remove() and discard()"""

    def test_remove_single_value(self):
        """[1,2,3] -> remove(2) -> [1,3]"""
        bag = LazyBag([1, 2, 3])
        assert bag.remove(2) is True
        assert list(bag) == [1, 3]

    def test_remove_none(self):
        """[1,None,3] -> remove(None) -> [1,3]"""
        bag = LazyBag([1, None, 3])
        bag.remove(None)
        assert list(bag) == [1, 3]

    def test_remove_none_keeps_falsy_values(self):
        """Removing None must not take out 0, '' or False"""
        bag = LazyBag([0, None, "", False, None])
        bag.remove(None)
        assert list(bag) == [0, "", False]

    def test_remove_value_keeps_none(self):
        """Removing a non-None sentinel leaves None elements alone"""
        sentinel = object()
        bag = LazyBag([None, sentinel, 1, sentinel])
        bag.remove(sentinel)
        assert list(bag) == [None, 1]

    def test_remove_filters_every_later_occurrence(self):
        bag = LazyBag(iter([2, 1, 2, 2, 3, 2]))
        bag.remove(2)
        assert list(bag) == [1, 3]

    def test_remove_uses_equality_not_identity(self):
        """Equal but distinct objects are removed too"""
        bag = LazyBag([("a", 1), ("b", 2), ("a", 1)])
        bag.remove(tuple(["a", 1]))
        assert list(bag) == [("b", 2)]

    def test_remove_unhashable_values(self):
        """Unhashable elements are compared with == directly"""
        bag = LazyBag([[1], [2], [1, 2]])
        bag.remove([2])
        assert list(bag) == [[1], [1, 2]]

    def test_remove_returns_true_without_a_match(self):
        """True means 'may affect future output', not 'found a match'"""
        bag = LazyBag([1, 2, 3])
        assert bag.remove(99) is True
        assert list(bag) == [1, 2, 3]

    def test_remove_on_exhausted_bag_returns_false(self):
        bag = LazyBag([1])
        list(bag)
        assert bag.remove(1) is False
        assert LazyBag().remove(1) is False

    def test_remove_does_not_affect_delivered_elements(self):
        """Elements already handed out stay handed out"""
        bag = LazyBag(iter([1, 2, 1, 3]))
        it = iter(bag)
        assert next(it) == 1
        bag.remove(1)
        assert list(it) == [2, 3]
        assert len(bag) == 3

    def test_remove_does_not_affect_later_additions(self):
        """Matching elements added after remove() are not suppressed"""
        bag = LazyBag([1, 2])
        bag.remove(2)
        bag.add(2)
        assert list(bag) == [1, 2]

    def test_discard_filters_like_remove(self):
        bag = LazyBag(["x", "y", "x"])
        assert bag.discard("x") is None
        assert list(bag) == ["y"]


class TestBulkFilters:
    """remove_all(), retain_all() and remove_if()"""

    def test_remove_all(self):
        """[1,2,3,2,4] -> remove_all([2,4]) -> [1,3]"""
        bag = LazyBag([1, 2, 3, 2, 4])
        assert bag.remove_all([2, 4]) is True
        assert list(bag) == [1, 3]

    def test_retain_all(self):
        """[1,2,3,2,4] -> retain_all([2,4]) -> [2,2,4]"""
        bag = LazyBag([1, 2, 3, 2, 4])
        assert bag.retain_all([2, 4]) is True
        assert list(bag) == [2, 2, 4]

    def test_retain_all_with_set(self):
        bag = LazyBag(iter("abracadabra"))
        bag.retain_all({"a", "c"})
        assert "".join(bag) == "aacaaa"

    def test_remove_if(self):
        bag = LazyBag(iter(range(10)))
        assert bag.remove_if(lambda n: n % 2) is True
        assert list(bag) == [0, 2, 4, 6, 8]

    def test_filters_compose(self):
        bag = LazyBag(iter(range(20)))
        bag.remove_if(lambda n: n % 2)
        bag.retain_all(range(0, 20, 3))
        bag.remove(12)
        assert list(bag) == [0, 6, 18]

    def test_filters_on_exhausted_bag_return_false(self):
        bag = LazyBag([1])
        list(bag)
        assert bag.remove_all([1]) is False
        assert bag.retain_all([1]) is False
        assert bag.remove_if(lambda n: True) is False

    def test_filters_are_lazy(self, tracking_source):
        """Installing a filter pulls nothing from the source"""
        source = tracking_source(range(100))
        bag = LazyBag(source)
        bag.remove(3)
        bag.remove_all([4, 5])
        bag.retain_all(range(50))
        bag.remove_if(lambda n: n > 40)
        assert source.pulled == 0
        assert list(bag)[:4] == [0, 1, 2, 6]


class TestAddition:
    """add() and add_all()"""

    def test_add_appends_after_pending_elements(self):
        bag = LazyBag([1, 2])
        assert bag.add(3) is True
        assert list(bag) == [1, 2, 3]

    def test_add_all_is_lazy(self, tracking_source):
        """add_all() does not consume the added sequence"""
        extra = tracking_source([3, 4])
        bag = LazyBag([1, 2])
        assert bag.add_all(extra) is True
        assert extra.pulled == 0
        assert list(bag) == [1, 2, 3, 4]

    def test_add_all_onto_empty_bag(self):
        bag = LazyBag()
        bag.add_all(iter([7, 8]))
        assert list(bag) == [7, 8]

    def test_add_during_iteration_is_seen(self):
        """Elements added while iterating come after the pending ones"""
        bag = LazyBag(iter([1, 2]))
        it = iter(bag)
        assert next(it) == 1
        bag.add(3)
        assert list(it) == [2, 3]

    def test_add_after_peek_keeps_peeked_element(self):
        """The element pulled by is_empty() is delivered exactly once"""
        bag = LazyBag(iter([1, 2]))
        assert bag.is_empty() is False
        bag.add(3)
        assert list(bag) == [1, 2, 3]

    def test_many_single_adds_after_peek(self):
        """Individual add() calls do not pile up nested wrappers"""
        bag = LazyBag(iter([0]))
        assert bag.is_empty() is False
        for n in range(1, 10_000):
            bag.add(n)
        assert list(bag) == list(range(10_000))
        assert len(bag) == 10_000

    def test_many_single_adds_without_cursor(self):
        bag = LazyBag()
        for n in range(10_000):
            bag.add(n)
        assert list(bag) == list(range(10_000))

    def test_many_adds_during_iteration(self):
        bag = LazyBag(iter([0]))
        it = iter(bag)
        assert next(it) == 0
        for n in range(1, 10_000):
            bag.add(n)
        assert sum(1 for _ in it) == 9_999
        assert bag.closed is True


class TestFilterAfterCursor:
    """Filters issued once a cursor exists apply to what it still holds"""

    def test_remove_after_peek_filters_peeked_element(self):
        """A peeked element that matches a later remove() is not delivered"""
        bag = LazyBag(iter([1, 2, 3]))
        assert bag.is_empty() is False
        bag.remove(1)
        assert list(bag) == [2, 3]

    def test_remove_of_only_element_after_peek_empties_bag(self):
        bag = LazyBag(iter([1]))
        assert bag.is_empty() is False
        bag.remove(1)
        assert bag.is_empty() is True
        assert list(bag) == []

    def test_filter_mid_iteration(self):
        """A filter installed mid-iteration applies to the rest of the run"""
        bag = LazyBag(iter(range(10)))
        it = iter(bag)
        assert [next(it), next(it)] == [0, 1]
        bag.remove_if(lambda n: n % 2 == 0)
        assert list(it) == [3, 5, 7, 9]
        assert len(bag) == 6
