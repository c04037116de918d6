import math

from ollie.stats import Stats, derive
from ollie.streaming import AssembledMessage


def test_scenario_rates():
    message = AssembledMessage(
        text="The sky is blue", done=True,
        eval_count=5, eval_duration=2_000_000_000,
    )
    stats = derive(message)
    assert stats == Stats(tokens_used=5, elapsed_seconds=2.0, tokens_per_second=2.5)


def test_prompt_tokens_counted():
    stats = derive(AssembledMessage(eval_count=5, prompt_eval_count=7))
    assert stats.tokens_used == 12


def test_zero_duration_gives_zero_rate():
    stats = derive(AssembledMessage(eval_count=10, eval_duration=0))
    assert stats.elapsed_seconds == 0.0
    assert stats.tokens_per_second == 0.0
    assert not math.isinf(stats.tokens_per_second)


def test_missing_metadata_defaults_to_zero():
    assert derive(AssembledMessage()) == Stats(0, 0.0, 0.0)


def test_derive_is_idempotent():
    message = AssembledMessage(eval_count=3, prompt_eval_count=2, eval_duration=1_500_000_000)
    assert derive(message) == derive(message)


def test_summary():
    text = Stats(tokens_used=5, elapsed_seconds=2.0, tokens_per_second=2.5).summary()
    assert "2.5 tokens/second" in text
    assert "2.0 seconds" in text
    assert "tokens used: 5" in text
