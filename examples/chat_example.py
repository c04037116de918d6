"""Interactive streaming chat.

Demonstrates:
- Choosing a backend (local Ollama or Gemini)
- Streaming text fragments to the terminal as they arrive
- Printing eval rate and token usage after every reply

Usage:
    uv run examples/chat_example.py --model llama3.2
    uv run --env-file=.env examples/chat_example.py --provider gemini --model gemini-2.0-flash --trace
"""

import argparse
import asyncio
import logging

from ollie.options import GenerationOptions
from ollie.provider import GeminiProvider, ModelProvider, OllamaProvider
from ollie.session import Session
from ollie.stats import derive

PROVIDERS = {
    "ollama": lambda host: OllamaProvider(host),
    "gemini": lambda host: GeminiProvider(),
}


def make_provider(provider: str, host: str | None) -> ModelProvider:
    return PROVIDERS[provider](host)


def setup_tracing(service_name: str):
    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        SimpleSpanProcessor, ConsoleSpanExporter,
    )
    from ollie.instrumentation import instrument

    provider = TracerProvider(
        resource=Resource({SERVICE_NAME: service_name})
    )
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    instrument()


def print_fragment(text: str):
    print(text, end="", flush=True)


async def main():
    parser = argparse.ArgumentParser(description="Streaming chat")
    parser.add_argument("--provider", choices=PROVIDERS, default="ollama")
    parser.add_argument("--model", default="llama3.2")
    parser.add_argument("--host", default=None)
    parser.add_argument("--num-ctx", type=int, default=None)
    parser.add_argument("--system", default="You are a concise, helpful assistant.")
    parser.add_argument("--trace", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    if args.trace:
        setup_tracing("ollie-chat")

    options = GenerationOptions(num_ctx=args.num_ctx)
    async with Session(
        args.model,
        provider=make_provider(args.provider, args.host),
        options=options,
    ) as session:
        session.system(args.system)
        print(f"Chatting with {args.model} (context window {session.context_window_size()})\n")

        while True:
            try:
                user_input = input("You: ")
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                break

            print("Assistant: ", end="", flush=True)
            reply = await session.prompt(user_input, print_fragment)
            print("\n")
            print(derive(reply).summary() + "\n")


if __name__ == "__main__":
    asyncio.run(main())
