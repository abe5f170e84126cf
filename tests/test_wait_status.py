"""Tests for the wait_status polling primitive in cloudprovider.py."""
import logging

import pytest
from unittest.mock import MagicMock

from classic_instance import ClassicInstance
from cloudprovider import RemoteFailureError, StatusTimeoutError, VMStatus, wait_status
from conftest import make_instance_data, queue_fetches


class FakeSource:
    """Status source that reports ``statuses`` one per refresh."""

    def __init__(self, statuses, clock=None):
        self.statuses = list(statuses)
        self.clock = clock
        self.refresh_count = 0
        self.poll_times = []
        self._current = None

    def refresh(self):
        self.refresh_count += 1
        if self.clock is not None:
            self.poll_times.append(self.clock.now)
        index = min(self.refresh_count - 1, len(self.statuses) - 1)
        self._current = self.statuses[index]

    def get_status(self):
        return self._current

    def get_name(self):
        return "fake"


class TestWaitStatus:
    """Tests for convergence and timeout behavior."""

    def test_returns_immediately_on_first_match(self, fake_clock):
        source = FakeSource([VMStatus.RUNNING])
        wait_status(source, VMStatus.RUNNING, 10, 300)
        assert source.refresh_count == 1
        assert fake_clock.sleeps == []

    @pytest.mark.parametrize("k", [2, 3, 5])
    def test_converges_after_exactly_k_polls(self, fake_clock, k):
        statuses = [VMStatus.READY] * (k - 1) + [VMStatus.RUNNING]
        source = FakeSource(statuses, clock=fake_clock)

        wait_status(source, VMStatus.RUNNING, 10, 300)

        assert source.refresh_count == k
        assert fake_clock.sleeps == [10] * (k - 1)
        # k-th poll happens after (k-1) intervals, i.e. within k intervals
        assert (k - 1) * 10 <= fake_clock.now <= k * 10

    def test_times_out_when_never_converging(self, fake_clock):
        source = FakeSource([VMStatus.READY], clock=fake_clock)

        with pytest.raises(StatusTimeoutError) as exc_info:
            wait_status(source, VMStatus.RUNNING, 10, 30)

        assert fake_clock.now >= 30
        assert exc_info.value.expected == "running"
        assert exc_info.value.last_status == VMStatus.READY

    def test_no_poll_after_deadline(self, fake_clock):
        source = FakeSource([VMStatus.READY], clock=fake_clock)

        with pytest.raises(StatusTimeoutError):
            wait_status(source, VMStatus.RUNNING, 10, 30)

        assert source.poll_times == [0, 10, 20]
        assert all(t < 30 for t in source.poll_times)

    def test_timeout_not_multiple_of_interval(self, fake_clock):
        source = FakeSource([VMStatus.READY], clock=fake_clock)

        with pytest.raises(StatusTimeoutError):
            wait_status(source, VMStatus.RUNNING, 10, 25)

        assert source.poll_times == [0, 10, 20]

    def test_matches_plain_string_status(self, fake_clock):
        source = FakeSource(["ready"])
        wait_status(source, VMStatus.READY, 1, 5)
        assert source.refresh_count == 1

    def test_refresh_failure_propagates(self, fake_clock):
        source = MagicMock()
        source.refresh.side_effect = RemoteFailureError("get_classic_instance", RuntimeError("boom"))

        with pytest.raises(RemoteFailureError):
            wait_status(source, VMStatus.RUNNING, 10, 300)
        assert fake_clock.sleeps == []


class TestWaitStatusArguments:
    """Tests for argument validation."""

    def test_rejects_zero_interval(self, fake_clock):
        with pytest.raises(ValueError):
            wait_status(FakeSource([VMStatus.READY]), VMStatus.READY, 0, 10)

    def test_rejects_timeout_below_interval(self, fake_clock):
        with pytest.raises(ValueError):
            wait_status(FakeSource([VMStatus.READY]), VMStatus.READY, 10, 5)


class TestWaitStatusOnClassicInstance:
    """One remote fetch per poll, even when a fetch carries no instance view."""

    def test_fetches_without_instance_view_cost_one_poll_each(self, region, fake_clock, caplog):
        queue_fetches(
            region,
            make_instance_data(status=None),
            make_instance_data(status=None),
            make_instance_data(status="ReadyRole"),
        )
        instance = ClassicInstance.from_dict(region, make_instance_data(status=None))

        with caplog.at_level(logging.ERROR, logger="classic_instance"):
            wait_status(instance, VMStatus.RUNNING, 10, 300)

        assert region.get_classic_instance.call_count == 3
        assert fake_clock.sleeps == [10, 10]
        assert caplog.records == []

    def test_snapshot_without_view_is_not_refetched(self, region):
        queue_fetches(region, make_instance_data(status=None))
        instance = ClassicInstance.from_dict(region, make_instance_data(status=None))

        instance.refresh()

        assert instance.get_status() == VMStatus.UNKNOWN
        assert region.get_classic_instance.call_count == 1
