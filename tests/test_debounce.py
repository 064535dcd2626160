"""
Tests for debounced functions.

Tests cover:
- Leading / trailing edge behaviour and defaults
- Timer reset semantics and latest-argument wins
- max_wait cadence under continuous calls
- cancel / flush / pending
- Receiver binding for methods
- Construction and decorator validation
"""

import pytest

from cadence import debounce, make_debounced
from cadence.exceptions import GovernorConfigError
from cadence.governor import DebouncedFunction
from cadence.governor_config import DebounceConfig, ThrottleConfig


class TestDebounceEdges:
    """Tests for leading and trailing edge behaviour."""

    def test_debounces_a_burst(self, timeline, func):
        """A burst of calls produces one invocation."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced()
        debounced()
        debounced()
        assert func.call_count == 0

        timeline.advance(100)
        assert func.call_count == 1

    def test_no_leading_invocation_by_default(self, timeline, func):
        """The first call does not invoke by default."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced()
        assert func.call_count == 0

        timeline.advance(100)
        assert func.call_count == 1

    def test_leading_invocation(self, timeline, func):
        """leading=True invokes on the first call only."""
        debounced = make_debounced(func, 100, leading=True, scheduler=timeline)

        debounced()
        assert func.call_count == 1

        timeline.advance(100)
        assert func.call_count == 1

    def test_trailing_disabled(self, timeline, func):
        """trailing=False drops calls after the leading one."""
        debounced = make_debounced(func, 100, leading=True, trailing=False, scheduler=timeline)

        debounced()
        debounced()
        timeline.advance(100)
        assert func.call_count == 1

    def test_leading_and_trailing(self, timeline, func):
        """Both edges fire for a burst of two calls."""
        debounced = make_debounced(func, 100, leading=True, trailing=True, scheduler=timeline)

        debounced()
        assert func.call_count == 1

        debounced()
        timeline.advance(100)
        assert func.call_count == 2

    def test_neither_edge_swallows_calls(self, timeline, func):
        """leading=False, trailing=False never invokes."""
        debounced = make_debounced(func, 100, leading=False, trailing=False, scheduler=timeline)

        for _ in range(5):
            debounced()
            timeline.advance(30)
        timeline.run_until_idle()
        assert func.call_count == 0
        assert debounced.pending() is False


class TestDebounceTiming:
    """Tests for quiet-period timing."""

    def test_each_call_extends_the_quiet_period(self, timeline, func):
        """The invocation comes wait after the last call."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced()
        timeline.advance(50)
        debounced()
        timeline.advance(50)
        assert func.call_count == 0

        timeline.advance(50)
        assert func.call_count == 1

    def test_fires_wait_after_last_call(self, timeline):
        """Calls at t=0 and t=50 with wait=100 invoke once at t=150."""
        invoked_at = []
        debounced = make_debounced(
            lambda: invoked_at.append(timeline.now()), 100, scheduler=timeline
        )

        debounced()
        timeline.advance(50)
        debounced()
        timeline.run_until_idle()

        assert invoked_at == [150]

    def test_rapid_successive_calls(self, timeline, func):
        """Calls closer together than wait keep deferring the invocation."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        for _ in range(10):
            debounced()
            timeline.advance(50)
        assert func.call_count == 0

        timeline.advance(100)
        assert func.call_count == 1

    def test_separate_bursts(self, timeline, func):
        """Each quiet period ends a burst."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced()
        timeline.advance(100)
        assert func.call_count == 1

        debounced()
        timeline.advance(100)
        assert func.call_count == 2

    def test_zero_wait(self, timeline, func):
        """wait=0 still defers to the scheduler."""
        debounced = make_debounced(func, 0, scheduler=timeline)

        debounced()
        assert func.call_count == 0

        timeline.advance(0)
        assert func.call_count == 1


class TestDebounceMaxWait:
    """Tests for the max_wait option."""

    def test_max_wait_forces_invocation(self, timeline, func):
        """Continuous calls invoke once max_wait has passed."""
        debounced = make_debounced(func, 100, max_wait=200, scheduler=timeline)

        for _ in range(4):
            debounced()
            timeline.advance(50)

        assert func.call_count == 1

    def test_max_wait_cadence(self, timeline):
        """Calls every 50 with wait=100, max_wait=200 invoke at 200 and 400."""
        invoked = []
        debounced = make_debounced(
            lambda i: invoked.append((timeline.now(), i)),
            100,
            max_wait=200,
            scheduler=timeline,
        )

        for i in range(10):
            debounced(i)
            timeline.advance(50)

        assert invoked == [(200, 3), (400, 7)]

        timeline.advance(100)
        assert invoked[-1] == (550, 9)

    def test_overdue_call_invokes_immediately(self, timeline, func):
        """A call past max_wait with the timer still armed invokes in place."""
        debounced = make_debounced(
            func, 100, max_wait=50, leading=True, trailing=False, scheduler=timeline
        )

        debounced("first")
        timeline.advance(60)
        func.assert_called_once_with("first")

        debounced("late")
        assert func.call_count == 2
        func.assert_called_with("late")
        assert debounced.stats().max_wait_invocations == 1

    def test_no_edges_swallows_overdue_calls(self, timeline, func):
        """Without leading or trailing edges max_wait never invokes."""
        debounced = make_debounced(
            func, 100, max_wait=50, leading=False, trailing=False, scheduler=timeline
        )

        debounced("first")
        timeline.advance(60)
        debounced("late")
        timeline.run_until_idle()

        assert func.call_count == 0
        assert debounced.pending() is False

    def test_leading_only_invokes_once_per_max_wait(self, timeline):
        """A leading-only burst longer than max_wait invokes once per max_wait."""
        invoked = []
        debounced = make_debounced(
            lambda i: invoked.append((timeline.now(), i)),
            100,
            max_wait=50,
            leading=True,
            trailing=False,
            scheduler=timeline,
        )

        for i in range(10):
            debounced(i)
            timeline.advance(20)
        timeline.run_until_idle()

        assert invoked == [(0, 0), (60, 3), (120, 6), (180, 9)]


class TestDebounceArguments:
    """Tests for argument and result handling."""

    def test_passes_arguments(self, timeline, func):
        """Positional and keyword arguments reach the callable."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced(1, 2, key="value")
        timeline.advance(100)

        func.assert_called_once_with(1, 2, key="value")

    def test_latest_arguments_win(self, timeline, func):
        """The trailing invocation uses the last call's arguments."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced(1)
        debounced(2)
        debounced(3)
        timeline.advance(100)

        func.assert_called_once_with(3)

    def test_leading_returns_result(self, timeline, func):
        """A leading invocation returns the callable's result."""
        debounced = make_debounced(func, 100, leading=True, scheduler=timeline)
        assert debounced() == "result"

    def test_deferred_call_returns_cached_result(self, timeline, func):
        """Calls that do not invoke return the last result."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        assert debounced() is None
        timeline.advance(100)
        assert debounced() == "result"


class TestDebounceControl:
    """Tests for cancel, flush and pending."""

    def test_cancel(self, timeline, func):
        """cancel() drops pending work."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced()
        debounced()
        debounced.cancel()
        timeline.advance(100)

        assert func.call_count == 0
        assert timeline.pending_count == 0

    def test_cancel_after_leading(self, timeline, func):
        """cancel() after a leading invocation drops only the trailing one."""
        debounced = make_debounced(func, 100, leading=True, scheduler=timeline)

        debounced()
        assert func.call_count == 1

        debounced()
        debounced.cancel()
        timeline.advance(100)
        assert func.call_count == 1

    def test_cancel_resets_call_history(self, timeline, func):
        """After cancel the next call starts a fresh burst."""
        debounced = make_debounced(func, 100, leading=True, scheduler=timeline)

        debounced()
        debounced.cancel()
        debounced()
        assert func.call_count == 2

    def test_cancel_idle_is_harmless(self, timeline, func):
        """Cancelling with nothing pending does nothing."""
        debounced = make_debounced(func, 100, scheduler=timeline)
        debounced.cancel()
        debounced.cancel()
        assert debounced.stats().cancellations == 0

    def test_flush(self, timeline, func):
        """flush() runs pending work immediately."""
        debounced = make_debounced(func, 100, scheduler=timeline)

        debounced(7)
        assert func.call_count == 0

        assert debounced.flush() == "result"
        func.assert_called_once_with(7)

        timeline.advance(100)
        assert func.call_count == 1

    def test_flush_idle_returns_cached_result(self, timeline, func):
        """flush() with nothing pending returns the last result."""
        debounced = make_debounced(func, 100, scheduler=timeline)
        assert debounced.flush() is None

        debounced()
        timeline.advance(100)
        assert debounced.flush() == "result"
        assert func.call_count == 1

    def test_flush_with_max_wait_disarms_escape(self, timeline, func):
        """flush() disarms the escape timer too."""
        debounced = make_debounced(func, 100, max_wait=300, scheduler=timeline)

        debounced()
        debounced.flush()

        assert timeline.pending_count == 0
        timeline.advance(500)
        assert func.call_count == 1

    def test_pending(self, timeline, func):
        """pending() reports an armed timer."""
        debounced = make_debounced(func, 100, scheduler=timeline)
        assert debounced.pending() is False

        debounced()
        assert debounced.pending() is True

        timeline.advance(100)
        assert debounced.pending() is False


class TestDebounceMethods:
    """Tests for debounced methods."""

    def test_receiver_is_passed(self, timeline):
        """Decorated methods receive the instance."""

        class Editor:
            def __init__(self):
                self.saved = []

            @debounce(100, scheduler=timeline)
            def save(self, text):
                self.saved.append(text)

        editor = Editor()
        editor.save("a")
        editor.save("ab")
        assert editor.save.pending() is True

        timeline.advance(100)
        assert editor.saved == ["ab"]

    def test_class_access_returns_wrapper(self, timeline):
        """Accessing the method on the class returns the wrapper itself."""

        class Editor:
            @debounce(100, scheduler=timeline)
            def save(self):
                """Persist the document."""

        assert isinstance(Editor.save, DebouncedFunction)
        assert Editor.save.__name__ == "save"
        assert Editor().save.__doc__ == "Persist the document."


class TestDebounceConstruction:
    """Tests for make_debounced / debounce arguments."""

    def test_preserves_metadata(self, timeline):
        """The wrapper carries the callable's name and docstring."""

        def search(query):
            """Look something up."""

        debounced = make_debounced(search, 0.3, scheduler=timeline)
        assert debounced.__name__ == "search"
        assert debounced.__doc__ == "Look something up."
        assert debounced.__wrapped__ is search
        assert "search" in repr(debounced)

    def test_from_config(self, timeline, func):
        """A DebounceConfig can replace the timing options."""
        config = DebounceConfig(wait=100, leading=True)
        debounced = make_debounced(func, config=config, scheduler=timeline)
        assert debounced.governor.policy.leading is True
        assert debounced.governor.policy.wait == 100.0

    def test_config_and_options_conflict(self, timeline, func):
        """config cannot be combined with explicit timing options."""
        with pytest.raises(GovernorConfigError):
            make_debounced(func, 100, config=DebounceConfig(wait=1), scheduler=timeline)

    def test_wrong_config_type(self, timeline, func):
        """A ThrottleConfig is rejected."""
        with pytest.raises(GovernorConfigError):
            make_debounced(func, config=ThrottleConfig(wait=1), scheduler=timeline)

    def test_wait_required(self, timeline, func):
        """wait is mandatory without a config."""
        with pytest.raises(GovernorConfigError, match="wait is required"):
            make_debounced(func, scheduler=timeline)

    @pytest.mark.parametrize("wait", [-1, float("nan"), float("inf"), "100", True])
    def test_invalid_wait(self, timeline, func, wait):
        """Invalid waits fail at construction."""
        with pytest.raises(GovernorConfigError):
            make_debounced(func, wait, scheduler=timeline)

    def test_invalid_max_wait(self, timeline, func):
        """A negative max_wait fails at construction."""
        with pytest.raises(ValueError):
            make_debounced(func, 100, max_wait=-5, scheduler=timeline)

    def test_decorator_validates_eagerly(self):
        """The decorator factory rejects bad options before decorating."""
        with pytest.raises(GovernorConfigError):
            debounce(-1)

    def test_non_callable(self, timeline):
        """Only callables can be debounced."""
        with pytest.raises(TypeError):
            make_debounced("not callable", 100, scheduler=timeline)
