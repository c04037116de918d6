"""Usage statistics derived from a finished message."""

from dataclasses import dataclass

from ollie.streaming import AssembledMessage

NANOSECONDS = 1e9


@dataclass(frozen=True)
class Stats:
    tokens_used: int
    elapsed_seconds: float
    tokens_per_second: float

    def summary(self) -> str:
        return (
            f"->    eval rate: {self.tokens_per_second:.1f} tokens/second\n"
            f"-> elapsed time: {self.elapsed_seconds:.1f} seconds\n"
            f"->  tokens used: {self.tokens_used}"
        )


def derive(message: AssembledMessage) -> Stats:
    """Compute token usage and throughput from terminal metadata.

    Missing counts and durations read as zero; throughput is zero when no
    time elapsed.
    """
    eval_count = message.eval_count or 0
    elapsed = (message.eval_duration or 0) / NANOSECONDS
    rate = eval_count / elapsed if elapsed > 0 else 0.0
    return Stats(
        tokens_used=message.tokens_used,
        elapsed_seconds=elapsed,
        tokens_per_second=rate,
    )
