"""Tests for Box construction, transformations and runners (synchronous values)."""

import logging
import math
from dataclasses import FrozenInstanceError
from unittest.mock import Mock

import pytest

from flowbox import Box, is_box
from flowbox.config import DEFAULT_CONFIG


def add_one(x):
    return x + 1


def bigger_than_ten(x):
    return x > 10


def explode(_):
    raise ValueError("no way")


BAD_VALUES = [None, math.nan, ValueError("bad")]


class TestConstruction:
    """Tests for Box.of and Box.from_producer."""

    def test_of_wraps_value(self):
        box = Box.of(5)
        assert callable(box.producer)
        assert box.run() == 5

    def test_from_producer_is_lazy(self):
        producer = Mock(return_value=6)
        box = Box.from_producer(producer).map(add_one)
        producer.assert_not_called()
        assert box.run() == 7
        producer.assert_called_once()

    def test_runs_are_not_memoized(self):
        producer = Mock(return_value=1)
        box = Box.from_producer(producer)
        box.run()
        box.run()
        assert producer.call_count == 2

    def test_box_is_immutable(self):
        """Verify Box cannot be mutated after creation."""
        box = Box.of(1)
        with pytest.raises(FrozenInstanceError):
            box.producer = lambda: 2  # type: ignore[misc]

    def test_is_box(self):
        assert is_box(Box.of(1))
        assert Box.is_box(Box.of(1))
        assert not is_box(1)

    def test_default_configuration(self):
        assert Box.of(1).configuration is DEFAULT_CONFIG

    def test_of_callable_value(self):
        assert Box.of(add_one).map(lambda fn: fn(2)).run() == 3


class TestMap:
    """Tests for Box.map."""

    def test_applies_callback(self):
        assert Box.of(5).map(add_one).run() == 6

    @pytest.mark.parametrize("bad", BAD_VALUES)
    def test_skips_bad_values(self, bad):
        fn = Mock()
        assert Box.of(bad).map(fn).run() is bad
        fn.assert_not_called()

    def test_bad_value_propagates_through_chain(self):
        fn = Mock()
        assert Box.of(1).map(lambda _: None).map(fn).map(fn).run() is None
        fn.assert_not_called()

    def test_catches_callback_exception(self):
        fn = Mock()
        result = Box.of(1).map(explode).map(fn).run()
        assert isinstance(result, ValueError)
        assert str(result) == "no way"
        fn.assert_not_called()

    def test_catches_producer_exception(self):
        def producer():
            raise ValueError("no way")

        fn = Mock()
        result = Box.from_producer(producer).map(add_one).map(fn).run()
        assert str(result) == "no way"
        fn.assert_not_called()


class TestFilter:
    """Tests for Box.filter."""

    def test_failing_predicate_gives_none(self):
        assert Box.of(5).filter(bigger_than_ten).run() is None

    def test_passing_predicate_keeps_value(self):
        assert Box.of(12).filter(bigger_than_ten).run() == 12

    def test_predicate_result_is_coerced_to_bool(self):
        """A NaN from the predicate is truthy, not a bad value."""
        assert Box.of(3).filter(lambda _: math.nan).run() == 3
        assert Box.of(3).filter(lambda _: 0).run() is None

    def test_predicate_not_called_on_bad_value(self):
        predicate = Mock()
        assert Box.of(None).filter(predicate).run() is None
        predicate.assert_not_called()

    def test_filtered_value_short_circuits(self):
        fn = Mock()
        Box.of(5).filter(bigger_than_ten).map(fn).run()
        fn.assert_not_called()


class TestFlatMap:
    """Tests for Box.flat_map and Box.chain."""

    def test_unwraps_returned_box(self):
        assert Box.of(5).flat_map(lambda x: Box.of(add_one(x))).run() == 6

    def test_passes_plain_result_through(self):
        assert Box.of(5).flat_map(add_one).run() == 6

    def test_unwraps_one_level_only(self):
        inner = Box.of(3)
        result = Box.of(1).flat_map(lambda _: Box.of(inner)).run()
        assert result is inner

    def test_skips_bad_value(self):
        fn = Mock()
        assert Box.of(None).flat_map(fn).run() is None
        fn.assert_not_called()

    def test_chain_is_alias(self):
        assert Box.of(2).chain(lambda x: Box.of(x * 2)).run() == 4

    def test_catches_exception(self):
        assert isinstance(Box.of(1).flat_map(explode).run(), ValueError)


class TestFlat:
    """Tests for Box.flat."""

    def test_flattens_nested_box(self):
        assert Box.of(Box.of(5)).flat().run() == 5

    def test_no_op_on_plain_value(self):
        assert Box.of(5).flat().run() == 5

    def test_flattens_one_level(self):
        inner = Box.of(5)
        assert Box.of(Box.of(inner)).flat().run() is inner

    def test_predicate_rules_are_not_applied_to_boxes(self):
        config = {"bad_values": (None, lambda v: v < 0)}
        assert Box.of(Box.of(5), config).flat().run() == 5
        assert Box.of(5, config).flat_map(lambda x: Box.of(x * 2)).run() == 10


class TestAp:
    """Tests for Box.ap."""

    def test_applies_function(self):
        assert Box.of(add_one).ap(Box.of(2)).run() == 3

    def test_accepts_plain_value(self):
        assert Box.of(add_one).ap(2).run() == 3

    def test_non_callable_passes_through(self):
        assert Box.of(7).ap(Box.of(2)).run() == 7

    @pytest.mark.parametrize("bad", BAD_VALUES)
    def test_bad_argument_short_circuits(self, bad):
        fn = Mock()
        assert Box.of(fn).ap(Box.of(bad)).run() is bad
        fn.assert_not_called()

    def test_bad_function_short_circuits(self):
        assert Box.of(None).ap(Box.of(2)).run() is None

    def test_curried_application(self):
        add = Box.of(lambda a: lambda b: a + b)
        assert add.ap(Box.of(1)).ap(Box.of(2)).run() == 3


class TestMutate:
    """Tests for Box.mutate."""

    def test_sees_bad_values(self):
        assert Box.of(None).mutate(lambda v: "was none" if v is None else v).run() == "was none"

    def test_returns_exception(self):
        assert isinstance(Box.of(1).mutate(explode).run(), ValueError)


class TestRecoverAndCatch:
    """Tests for Box.recover and Box.catch."""

    def test_recover_handles_bad_value(self):
        assert Box.of(None).recover(lambda _: "default").run() == "default"

    def test_recover_handles_error(self):
        assert Box.of(1).map(explode).recover(lambda e: f"recovered {e}").run() == "recovered no way"

    def test_recover_ignores_good_value(self):
        fn = Mock()
        assert Box.of(1).recover(fn).run() == 1
        fn.assert_not_called()

    def test_recover_handles_producer_exception(self):
        def producer():
            raise KeyError("k")

        result = Box.from_producer(producer).recover(lambda e: type(e).__name__).run()
        assert result == "KeyError"

    def test_catch_handles_error(self):
        assert Box.of(1).map(explode).catch(lambda e: str(e)).run() == "no way"

    def test_catch_ignores_bad_value(self):
        fn = Mock()
        assert Box.of(None).catch(fn).run() is None
        fn.assert_not_called()

    def test_pipeline_continues_after_recovery(self):
        result = Box.of(None).recover(lambda _: 1).map(add_one).run()
        assert result == 2


class TestRun:
    """Tests for Box.run."""

    def test_returns_exception_instead_of_raising(self):
        def producer():
            raise RuntimeError("boom")

        assert isinstance(Box.from_producer(producer).run(), RuntimeError)


class TestUnwrap:
    """Tests for Box.unwrap."""

    def test_returns_value(self):
        assert Box.of(3).unwrap() == 3

    def test_returns_bad_value(self):
        assert Box.of(None).unwrap() is None

    def test_raises_exact_error(self):
        exc = ValueError("exact")
        with pytest.raises(ValueError) as exc_info:
            Box.of(exc).unwrap()
        assert exc_info.value is exc

    def test_raises_callback_error(self):
        with pytest.raises(ValueError, match="no way"):
            Box.of(1).map(explode).unwrap()


class TestFold:
    """Tests for Box.fold with synchronous values."""

    def _fold(self, box):
        on_error, on_bad, on_success, on_finally = Mock(), Mock(), Mock(), Mock()
        box.fold(on_error, on_bad, on_success, on_finally)
        return on_error, on_bad, on_success, on_finally

    def test_success(self):
        on_error, on_bad, on_success, on_finally = self._fold(Box.of(1))
        on_success.assert_called_once_with(1)
        on_error.assert_not_called()
        on_bad.assert_not_called()
        on_finally.assert_called_once_with()

    def test_bad(self):
        on_error, on_bad, on_success, on_finally = self._fold(Box.of(None))
        on_bad.assert_called_once_with(None)
        on_error.assert_not_called()
        on_success.assert_not_called()
        on_finally.assert_called_once_with()

    def test_error(self):
        on_error, on_bad, on_success, on_finally = self._fold(Box.of(1).map(explode))
        on_error.assert_called_once()
        assert isinstance(on_error.call_args.args[0], ValueError)
        on_bad.assert_not_called()
        on_success.assert_not_called()
        on_finally.assert_called_once_with()

    def test_returns_branch_result(self):
        assert Box.of(2).fold(str, lambda _: "bad", lambda v: v * 2) == 4

    def test_raising_branch_goes_to_on_error(self):
        on_error = Mock(return_value="handled")
        assert Box.of(1).fold(on_error, Mock(), explode) == "handled"
        assert isinstance(on_error.call_args.args[0], ValueError)

    def test_finally_is_optional(self):
        assert Box.of(None).fold(Mock(), lambda _: "nothing", Mock()) == "nothing"


class TestCollect:
    """Tests for Box.collect."""

    def test_earlier_stages_do_not_rerun(self):
        producer = Mock(return_value=1)
        collected = Box.from_producer(producer).map(add_one).collect()
        assert producer.call_count == 1
        assert collected.map(add_one).run() == 3
        assert collected.run() == 2
        assert producer.call_count == 1

    def test_collects_error(self):
        def producer():
            raise RuntimeError("early")

        collected = Box.from_producer(producer).collect()
        assert isinstance(collected.run(), RuntimeError)

    def test_keeps_configuration(self):
        box = Box.of(1).with_configuration(bad_values=[2])
        assert box.collect().configuration is box.configuration


class TestDebugging:
    """Tests for inspect, tap and peek."""

    def test_inspect_logs_value(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="flowbox.box"):
            assert Box.of(5).inspect("answer").run() == 5
        assert "Box - answer - value: 5" in caplog.text

    def test_tap_receives_box_and_passes_value(self):
        seen = []
        box = Box.of(3)
        assert box.tap(seen.append).run() == 3
        assert seen == [box]

    def test_tap_swallows_and_logs_errors(self, caplog):
        with caplog.at_level(logging.WARNING, logger="flowbox.box"):
            assert Box.of(3).tap(explode).run() == 3
        assert "tap callback raised" in caplog.text

    def test_peek_receives_value_and_configuration(self):
        seen = []
        box = Box.of(4)
        assert box.peek(lambda v, c: seen.append((v, c))).run() == 4
        assert seen == [(4, box.configuration)]
