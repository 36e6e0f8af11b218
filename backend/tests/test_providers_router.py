"""Tests for the provider factory, scope router and budgeted retry."""

import asyncio
import json
import unittest
from unittest.mock import patch

from stubs import StubProvider, make_config

from pagelens.core.config import PipelineConfig
from pagelens.services.ai.common import router as ai_router
from pagelens.services.ai.common.invoke import InvokeFailed, generate_with_retry
from pagelens.services.ai.common.providers import get_provider
from pagelens.services.ai.common.providers.base import split_data_url
from pagelens.services.ai.common.providers.mock import MockProvider
from pagelens.services.ai.common.router import ResolvedConfig


def _resolved(provider, **overrides) -> ResolvedConfig:
    values = dict(
        provider=provider,
        model="stub-model",
        temperature=0.0,
        max_tokens=100,
        timeout_seconds=1.0,
        max_retries=1,
        budget_seconds=10.0,
    )
    values.update(overrides)
    return ResolvedConfig(**values)


class ProviderFactoryTests(unittest.TestCase):
    def test_not_in_allowlist_falls_back_to_mock(self):
        config = make_config(allowed_providers=("mock",))
        self.assertIsInstance(get_provider("openai", config), MockProvider)

    def test_missing_key_falls_back_to_mock(self):
        config = make_config(provider_keys={"openai": "", "claude": ""})
        self.assertIsInstance(get_provider("openai", config), MockProvider)
        self.assertIsInstance(get_provider("claude", config), MockProvider)

    def test_unknown_provider_falls_back_to_mock(self):
        config = make_config(allowed_providers=("mock", "llama"))
        self.assertIsInstance(get_provider("llama", config), MockProvider)

    def test_keyed_providers_are_built(self):
        from pagelens.services.ai.common.providers.claude import ClaudeProvider
        from pagelens.services.ai.common.providers.openai import OpenAIProvider

        config = make_config()
        self.assertIsInstance(get_provider("OpenAI", config), OpenAIProvider)
        self.assertIsInstance(get_provider("claude", config), ClaudeProvider)


class MockProviderTests(unittest.TestCase):
    def test_ocr_prompt_gets_ocr_shape(self):
        result = asyncio.run(MockProvider().generate('Return {"rawText": ...}'))
        parsed = json.loads(result.raw_text)
        self.assertIn("rawText", parsed)
        self.assertEqual(result.provider, "mock")

    def test_other_prompts_get_vision_shape(self):
        result = asyncio.run(MockProvider().generate("Describe the page", model="custom-model"))
        parsed = json.loads(result.raw_text)
        self.assertEqual(parsed["features"], [])
        self.assertFalse(parsed["primaryImagePresent"])
        self.assertEqual(result.model, "custom-model")


class SplitDataUrlTests(unittest.TestCase):
    def test_valid_data_url(self):
        self.assertEqual(split_data_url("data:image/png;base64,AAAA"), ("image/png", "AAAA"))

    def test_invalid_data_url(self):
        for value in ("data:image/png,AAAA", "http://example.com/a.png", "data:text/plain;base64,AAAA"):
            with self.assertRaises(ValueError):
                split_data_url(value)


class RouterTests(unittest.TestCase):
    def test_unknown_scope_rejected(self):
        with self.assertRaises(ValueError):
            ai_router.resolve("pricing", make_config())

    def test_scope_picks_its_own_provider(self):
        with patch.object(ai_router, "get_provider", return_value=MockProvider()) as mock_get:
            ai_router.resolve("ocr", make_config())
            ai_router.resolve("vision", make_config())
        self.assertEqual([c.args[0] for c in mock_get.call_args_list], ["openai", "claude"])

    def test_model_outside_allowlist_replaced(self):
        config = make_config(ocr_model="gpt-unknown", allowed_models={"openai": ["gpt-4o", "gpt-4o-mini"]})
        resolved = ai_router.resolve("ocr", config)
        self.assertEqual(resolved.model, "gpt-4o")

    def test_blank_model_takes_first_allowed(self):
        config = make_config(vision_model="", allowed_models={"claude": ["claude-sonnet"]})
        self.assertEqual(ai_router.resolve("vision", config).model, "claude-sonnet")

    def test_blank_provider_is_mock(self):
        resolved = ai_router.resolve("vision", PipelineConfig(vision_provider=""))
        self.assertIsInstance(resolved.provider, MockProvider)

    def test_budget_values_copied(self):
        resolved = ai_router.resolve("ocr", make_config(timeout_seconds=4.0, budget_seconds=9.0, max_retries=0))
        self.assertEqual((resolved.timeout_seconds, resolved.budget_seconds, resolved.max_retries), (4.0, 9.0, 0))


class GenerateWithRetryTests(unittest.TestCase):
    def test_first_attempt_accepted(self):
        provider = StubProvider({"ok": True})
        result = asyncio.run(generate_with_retry(_resolved(provider), "p", json.loads))
        self.assertEqual(result.value, {"ok": True})
        self.assertEqual(result.attempts, 1)
        self.assertEqual(provider.calls[0]["model"], "stub-model")

    def test_retries_once_after_provider_error(self):
        provider = StubProvider(RuntimeError("boom"), {"ok": True})
        result = asyncio.run(generate_with_retry(_resolved(provider), "p", json.loads))
        self.assertEqual(result.attempts, 2)
        self.assertEqual(len(provider.calls), 2)

    def test_rejected_completion_counts_as_failure(self):
        provider = StubProvider("not json")
        with self.assertRaises(InvokeFailed) as ctx:
            asyncio.run(generate_with_retry(_resolved(provider), "p", json.loads))
        self.assertEqual(ctx.exception.attempts, 2)
        self.assertIsInstance(ctx.exception.last_error, ValueError)

    def test_retry_capped_at_one(self):
        provider = StubProvider(RuntimeError("boom"))
        with self.assertRaises(InvokeFailed):
            asyncio.run(generate_with_retry(_resolved(provider, max_retries=5), "p", json.loads))
        self.assertEqual(len(provider.calls), 2)

    def test_no_retry_when_disabled(self):
        provider = StubProvider(RuntimeError("boom"))
        with self.assertRaises(InvokeFailed):
            asyncio.run(generate_with_retry(_resolved(provider, max_retries=0), "p", json.loads))
        self.assertEqual(len(provider.calls), 1)

    def test_no_retry_when_budget_spent(self):
        provider = StubProvider(RuntimeError("boom"))
        with self.assertRaises(InvokeFailed) as ctx:
            asyncio.run(generate_with_retry(_resolved(provider, budget_seconds=0.1), "p", json.loads))
        self.assertEqual(ctx.exception.attempts, 1)


if __name__ == "__main__":
    unittest.main()
