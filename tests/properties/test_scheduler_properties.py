"""Property-based tests for refresh scheduling.

Whatever the interleaving of timer ticks, manual refreshes and completions,
at most one fetch is in flight and stale completions never change state.
"""

from hypothesis import given
from hypothesis import strategies as st

from cluster_monitor.scheduler import RefreshScheduler, SchedulerState


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


events = st.lists(
    st.one_of(
        st.tuples(st.just("advance"), st.floats(min_value=0.0, max_value=120.0)),
        st.tuples(st.just("tick"), st.none()),
        st.tuples(st.just("manual"), st.none()),
        st.tuples(st.just("complete"), st.booleans()),
        st.tuples(st.just("stale"), st.booleans()),
    ),
    max_size=60,
)


@given(interval=st.integers(min_value=0, max_value=30), events=events)
def test_single_fetch_in_flight(interval, events):
    """A new fetch id is only handed out when nothing is in flight."""
    clock = FakeClock()
    scheduler = RefreshScheduler(interval, clock=clock, max_backoff=60.0)
    outstanding = []

    for kind, arg in events:
        if kind == "advance":
            clock.now += arg
        elif kind in ("tick", "manual"):
            was_in_flight = scheduler.in_flight
            if kind == "tick":
                fetch_id = scheduler.tick()
            else:
                fetch_id = scheduler.manual_refresh()
            if fetch_id is not None:
                assert not was_in_flight
                assert not outstanding
                outstanding.append(fetch_id)
            assert len(outstanding) <= 1
        elif kind == "complete" and outstanding:
            assert scheduler.complete(outstanding.pop(), ok=arg)
            assert not scheduler.in_flight
        elif kind == "stale":
            before = (scheduler.state, scheduler.next_due, scheduler.failures)
            assert not scheduler.complete(scheduler.fetch_id - 1, ok=arg)
            assert (scheduler.state, scheduler.next_due, scheduler.failures) == before

        assert scheduler.in_flight == bool(outstanding)


@given(
    interval=st.integers(min_value=1, max_value=30),
    failures=st.integers(min_value=1, max_value=12),
)
def test_backoff_is_bounded(interval, failures):
    """Backoff doubles per failure and never exceeds the ceiling."""
    clock = FakeClock()
    scheduler = RefreshScheduler(interval, clock=clock, max_backoff=60.0)

    for n in range(1, failures + 1):
        scheduler.complete(scheduler.manual_refresh(), ok=False)
        delay = scheduler.next_due - clock.now
        assert delay == min(interval * 2 ** (n - 1), 60.0)
        assert scheduler.state is SchedulerState.BACKOFF

    scheduler.complete(scheduler.manual_refresh(), ok=True)
    assert scheduler.next_due - clock.now == interval
    assert scheduler.failures == 0
