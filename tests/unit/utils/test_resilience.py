import asyncio
from unittest.mock import patch

import pytest

from eventradar.utils.resilience import RetryPolicy


def test_exponential_backoff_without_jitter():
    policy = RetryPolicy(base_delay_s=0.5, max_delay_s=10, jitter=0)
    assert [policy.compute_backoff_s(a) for a in (1, 2, 3, 4)] == [0.5, 1.0, 2.0, 4.0]


def test_backoff_capped():
    policy = RetryPolicy(base_delay_s=1, max_delay_s=2, jitter=0)
    assert policy.compute_backoff_s(10) == 2


def test_fixed_and_none_modes():
    assert RetryPolicy(backoff_mode="fixed", base_delay_s=0.3, jitter=0).compute_backoff_s(5) == 0.3
    assert RetryPolicy(backoff_mode="none").compute_backoff_s(5) == 0.0


def test_jitter_bounds():
    policy = RetryPolicy(base_delay_s=1, max_delay_s=10, jitter=0.25)
    for _ in range(50):
        assert 0.75 <= policy.compute_backoff_s(1) <= 1.25


def test_from_dict_ignores_unknown_keys():
    policy = RetryPolicy.from_dict({"max_retries": 5, "backoff_mode": "fixed", "colour": "red"})
    assert policy.max_retries == 5
    assert policy.backoff_mode == "fixed"
    assert RetryPolicy.from_dict(None) == RetryPolicy()


def test_run_retries_then_succeeds():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise OSError("transient")
        return "ok"

    policy = RetryPolicy(max_retries=3, backoff_mode="none")
    assert asyncio.run(policy.run(flaky)) == "ok"
    assert len(attempts) == 3


def test_run_reraises_after_max_retries():
    attempts = []

    async def broken():
        attempts.append(1)
        raise OSError("permanent")

    policy = RetryPolicy(max_retries=2, backoff_mode="none")
    with pytest.raises(OSError):
        asyncio.run(policy.run(broken))
    assert len(attempts) == 3


def test_run_does_not_retry_other_errors():
    attempts = []

    async def broken():
        attempts.append(1)
        raise KeyError("bug")

    policy = RetryPolicy(max_retries=2, backoff_mode="none")
    with pytest.raises(KeyError):
        asyncio.run(policy.run(broken, retry_on=(OSError,)))
    assert len(attempts) == 1


def test_run_sleeps_between_attempts():
    async def broken():
        raise OSError("permanent")

    policy = RetryPolicy(max_retries=2, base_delay_s=0.1, jitter=0)

    async def fake_sleep(delay):
        return None

    with patch("eventradar.utils.resilience.asyncio.sleep", side_effect=fake_sleep) as sleep:
        with pytest.raises(OSError):
            asyncio.run(policy.run(broken))

    assert [c.args[0] for c in sleep.call_args_list] == [0.1, 0.2]
