"""Tests para la política de reconexión."""

import pytest

from modules.oscrelay_link import ReconnectPolicy, UNLIMITED


class TestReconnectPolicy:
    """Tests para ReconnectPolicy."""

    def test_defaults(self):
        policy = ReconnectPolicy()

        assert policy.max_attempts == 3
        assert policy.retry_delay_ms == 5000
        assert policy.delay == 5.0
        assert policy.attempt == 0
        assert policy.should_retry

    def test_budget_exhausted_after_max_failures(self):
        """Test tres fallos agotan un presupuesto de 3."""
        policy = ReconnectPolicy(max_attempts=3, retry_delay_ms=0)

        assert policy.register_failure() is True
        assert policy.register_failure() is True
        assert policy.register_failure() is False
        assert policy.attempt == 3

    def test_reset(self):
        policy = ReconnectPolicy(max_attempts=3)
        policy.register_failure()
        policy.reset()

        assert policy.attempt == 0
        assert policy.should_retry

    def test_unlimited(self):
        policy = ReconnectPolicy(max_attempts=UNLIMITED)
        for _ in range(100):
            assert policy.register_failure() is True

    def test_zero_budget_never_retries(self):
        policy = ReconnectPolicy(max_attempts=0)
        assert policy.register_failure() is False

    @pytest.mark.parametrize("max_attempts,delay", [(-2, 0), (3, -1)])
    def test_invalid_values(self, max_attempts, delay):
        with pytest.raises(ValueError):
            ReconnectPolicy(max_attempts=max_attempts, retry_delay_ms=delay)

    @pytest.mark.asyncio
    async def test_wait_uses_fixed_delay(self):
        policy = ReconnectPolicy(max_attempts=3, retry_delay_ms=0)
        policy.register_failure()
        await policy.wait()
        assert policy.attempt == 1
