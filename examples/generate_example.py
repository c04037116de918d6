"""One-shot generation without keeping a conversation.

Usage:
    uv run examples/generate_example.py "Why is the sky blue?"
    uv run examples/generate_example.py --no-stream --temperature 0 "Name three rivers."
    uv run examples/generate_example.py --no-stream --json "Say hi."
"""

import argparse
import asyncio
import json

from ollie.options import GenerationOptions
from ollie.provider import OllamaProvider
from ollie.session import generate
from ollie.stats import derive


async def main():
    parser = argparse.ArgumentParser(description="One-shot generation")
    parser.add_argument("prompt")
    parser.add_argument("--model", default="llama3.2")
    parser.add_argument("--host", default=None)
    parser.add_argument("--temperature", type=float, default=None)
    parser.add_argument("--no-stream", action="store_true")
    parser.add_argument("--json", action="store_true", help="print the whole reply as JSON")
    args = parser.parse_args()

    provider = OllamaProvider(args.host)
    try:
        reply = await generate(
            provider,
            args.model,
            args.prompt,
            callback=None if args.no_stream else lambda t: print(t, end="", flush=True),
            options=GenerationOptions(temperature=args.temperature),
            stream=not args.no_stream,
        )
    finally:
        await provider.aclose()

    if args.json:
        print(json.dumps(reply.to_dict(), indent=2))
        return
    if args.no_stream:
        print(reply.text, end="")
    print("\n")
    print(derive(reply).summary())


if __name__ == "__main__":
    asyncio.run(main())
