"""
Unit tests for the per-client generation counter
"""
from unittest.mock import patch, MagicMock

import redis

from flashdeck.services.rate_counter import RateCounter


class TestMemoryCounter:
    def test_counts_up_to_limit(self):
        """The client is limited once the count reaches the quota"""
        counter = RateCounter(redis_url=None, limit=2, window_seconds=60)
        assert not counter.is_limited("1.2.3.4")
        counter.increment("1.2.3.4")
        assert not counter.is_limited("1.2.3.4")
        assert counter.increment("1.2.3.4") == 2
        assert counter.is_limited("1.2.3.4")
        assert not counter.is_limited("5.6.7.8")

    @patch("flashdeck.services.rate_counter.time.monotonic")
    def test_window_expires(self, mock_monotonic):
        """Counts reset once the window has passed"""
        mock_monotonic.return_value = 1000.0
        counter = RateCounter(redis_url=None, limit=1, window_seconds=900)
        counter.increment("client")
        assert counter.is_limited("client")

        mock_monotonic.return_value = 1000.0 + 901
        assert counter.get("client") == 0
        assert not counter.is_limited("client")

    def test_reset(self):
        """Reset clears the client's count"""
        counter = RateCounter(redis_url=None)
        counter.increment("client")
        assert counter.reset("client")
        assert counter.get("client") == 0


class TestRedisCounter:
    @patch("flashdeck.services.rate_counter.redis.from_url")
    def test_increment_sets_expiry(self, mock_from_url):
        """Increment and expiry go through one pipeline"""
        client = MagicMock()
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [3, True]
        mock_from_url.return_value = client

        counter = RateCounter(redis_url="redis://localhost:6379/0", window_seconds=900)
        assert counter.increment("9.9.9.9") == 3
        pipe.incr.assert_called_once_with("rate_limit:9.9.9.9")
        pipe.expire.assert_called_once_with("rate_limit:9.9.9.9", 900)

    @patch("flashdeck.services.rate_counter.redis.from_url")
    def test_unreachable_redis_falls_back_to_memory(self, mock_from_url):
        """A failed ping switches to the in-memory store"""
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        mock_from_url.return_value = client

        counter = RateCounter(redis_url="redis://localhost:6379/0")
        assert counter.redis_client is None
        assert counter.increment("client") == 1

    @patch("flashdeck.services.rate_counter.redis.from_url")
    def test_backend_errors_never_raise(self, mock_from_url):
        """Counter errors degrade to 'not limited' instead of failing"""
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("gone")
        client.pipeline.side_effect = redis.ConnectionError("gone")
        mock_from_url.return_value = client

        counter = RateCounter(redis_url="redis://localhost:6379/0", limit=1)
        assert counter.get("client") == 0
        assert not counter.is_limited("client")
        assert counter.increment("client") == 0
