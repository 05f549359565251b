"""
Unit tests for the rule template cache.
"""
import unittest

from waf_manager.core.rule_cache import RuleTemplateCache
from waf_manager.exceptions.custom_exceptions import TemplateFetchError

from cloudflare_stub import StubTemplateStore, make_template


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRuleTemplateCache(unittest.IsolatedAsyncioTestCase):
    """Test cases for RuleTemplateCache class."""

    def setUp(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.store = StubTemplateStore([
            make_template("Block bad bots", "(cf.client.bot)", "block", 1),
            make_template("Challenge non-AU", '(ip.geoip.country ne "AU")', "managed_challenge", 2),
        ])
        self.cache = RuleTemplateCache(self.store, ttl=300, clock=self.clock)

    async def test_templates_become_rules(self):
        """Test template names are used as rule descriptions, in order."""
        # Act
        rules = await self.cache.get_rules()

        # Assert
        self.assertEqual([r.description for r in rules], ["Block bad bots", "Challenge non-AU"])
        self.assertEqual(rules[1].action, "managed_challenge")

    async def test_reads_within_ttl_hit_store_once(self):
        """Test two reads inside the TTL fetch once."""
        # Act
        await self.cache.get_rules()
        self.clock.now += 299
        await self.cache.get_rules()

        # Assert
        self.assertEqual(self.store.calls, 1)

    async def test_read_after_ttl_refetches(self):
        """Test an expired cache goes back to the store."""
        # Act
        await self.cache.get_rules()
        self.clock.now += 301
        await self.cache.get_rules()

        # Assert
        self.assertEqual(self.store.calls, 2)

    async def test_invalidate_forces_fetch(self):
        """Test invalidate makes the next read refetch regardless of age."""
        # Act
        await self.cache.get_rules()
        self.cache.invalidate()
        await self.cache.get_rules()

        # Assert
        self.assertEqual(self.store.calls, 2)

    async def test_empty_template_set_is_refetched(self):
        """Test an empty result is not treated as a warm cache."""
        # Arrange
        self.store.templates = []

        # Act
        await self.cache.get_rules()
        await self.cache.get_rules()

        # Assert
        self.assertEqual(self.store.calls, 2)

    async def test_store_failure_raises_and_leaves_cache_empty(self):
        """Test store errors surface as TemplateFetchError with nothing cached."""
        # Arrange
        await self.cache.get_rules()
        self.clock.now += 301
        self.store.error = RuntimeError("database is locked")

        # Act & Assert
        with self.assertRaises(TemplateFetchError):
            await self.cache.get_rules()

        self.assertIsNone(self.cache.last_fetched_at)
        self.assertTrue(self.cache.is_stale())

    async def test_returned_list_is_a_copy(self):
        """Test callers cannot mutate the cached rules list."""
        # Act
        rules = await self.cache.get_rules()
        rules.clear()

        # Assert
        self.assertEqual(len(await self.cache.get_rules()), 2)
        self.assertEqual(self.store.calls, 1)


if __name__ == '__main__':
    unittest.main()
