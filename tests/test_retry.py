"""Tests for the retry policy."""
import time

from dockyard.core.executor import Action, AttemptExecutor
from dockyard.core.outcome import Outcome
from dockyard.core.retry import RetryPolicy

FLAKY = "Temporary failure resolving 'mirror.example.org'"


def _policy(host, sleeps=None):
    return RetryPolicy(AttemptExecutor(host), sleep=(sleeps.append if sleeps is not None else time.sleep))


class TestRetryPolicy:
    """Bounded retries of transient failures."""

    def test_exactly_max_attempts_on_endless_transient(self, host):
        sleeps = []
        host.fail("fetch", FLAKY)

        result = _policy(host, sleeps).attempt(Action("fetch", steps=[["fetch"]]), max_attempts=4, delay=2.5)

        assert result.outcome is Outcome.TRANSIENT
        assert result.attempts == 4
        assert len(host.ran("fetch")) == 4
        assert sleeps == [2.5, 2.5, 2.5]

    def test_elapsed_time_matches_delays(self, host):
        host.fail("fetch", FLAKY)
        policy = RetryPolicy(AttemptExecutor(host))

        start = time.monotonic()
        policy.attempt(Action("fetch", steps=[["fetch"]]), max_attempts=3, delay=0.1)
        elapsed = time.monotonic() - start

        assert 0.2 <= elapsed < 0.6

    def test_fatal_aborts_without_retry(self, host):
        sleeps = []
        host.fail("apt-get install", "E: Unable to locate package docker-ce")

        result = _policy(host, sleeps).attempt(
            Action("install", steps=[["apt-get", "install", "-y", "docker-ce"]]),
            max_attempts=5, delay=1,
        )

        assert result.outcome is Outcome.FATAL
        assert result.attempts == 1
        assert len(host.ran("apt-get install")) == 1
        assert sleeps == []

    def test_success_after_transient(self, host):
        host.fail("fetch", FLAKY, times=2)

        result = _policy(host, []).attempt(Action("fetch", steps=[["fetch"]]), max_attempts=3, delay=0)

        assert result.ok
        assert result.attempts == 3

    def test_first_success_returns_immediately(self, host):
        result = _policy(host, []).attempt(Action("fetch", steps=[["fetch"]]), max_attempts=3, delay=0)
        assert result.ok
        assert result.attempts == 1
        assert len(host.ran("fetch")) == 1

    def test_remediation_runs_between_tries(self, host):
        host.fail("apt-get install", "E: Could not get lock /var/lib/dpkg/lock-frontend")
        repair = Action("repair", steps=[["dpkg", "--configure", "-a"]])

        _policy(host, []).attempt(
            Action("install", steps=[["apt-get", "install", "-y", "x"]]),
            max_attempts=3, delay=0, remediation=repair,
        )

        # Not after the last try
        assert len(host.ran("dpkg --configure -a")) == 2
        order = [argv[0] for argv in host.calls]
        assert order == ["apt-get", "dpkg", "apt-get", "dpkg", "apt-get"]

    def test_failed_remediation_does_not_stop_retries(self, host):
        host.fail("fetch", FLAKY)
        host.fail("fix", "fix: permission denied")

        result = _policy(host, []).attempt(
            Action("fetch", steps=[["fetch"]]), max_attempts=3, delay=0,
            remediation=Action("fix", steps=[["fix"]]),
        )

        assert result.attempts == 3
        assert len(host.ran("fix")) == 2

    def test_max_attempts_floor_is_one(self, host):
        result = _policy(host, []).attempt(Action("fetch", steps=[["fetch"]]), max_attempts=0, delay=0)
        assert result.ok
        assert len(host.ran("fetch")) == 1
