"""Tool calling: the model asks for a function, we run it and answer.

Demonstrates:
- Declaring tools with @tool
- Reading tool calls off the assembled reply
- Feeding results back with Session.tool() and updating again

Usage:
    uv run examples/function_example.py --model llama3.2
    uv run --env-file=.env examples/function_example.py --provider gemini --model gemini-2.0-flash
"""

import argparse
import asyncio

from ollie.provider import GeminiProvider, OllamaProvider
from ollie.session import Session
from ollie.tools import tool

PROVIDERS = {
    "ollama": lambda: OllamaProvider(),
    "gemini": lambda: GeminiProvider(),
}


@tool
def get_weather(location: str, unit: str = "celsius"):
    """Get the current weather for a location."""
    return {"location": location, "temp": 20 if unit == "celsius" else 68, "unit": unit}


@tool
def get_time(timezone: str):
    """Get the current local time in an IANA timezone."""
    from datetime import datetime
    from zoneinfo import ZoneInfo
    return datetime.now(ZoneInfo(timezone)).strftime("%H:%M")


TOOLS = {t.name: t for t in (get_weather, get_time)}


async def main():
    parser = argparse.ArgumentParser(description="Tool calling")
    parser.add_argument("--provider", choices=PROVIDERS, default="ollama")
    parser.add_argument("--model", default="llama3.2")
    parser.add_argument("question", nargs="?", default="What's the weather and time in Paris?")
    args = parser.parse_args()

    async with Session(
        args.model, provider=PROVIDERS[args.provider](), tools=list(TOOLS.values()),
    ) as session:
        reply = await session.prompt(args.question)

        # Keep answering tool calls until the model replies with text only.
        while reply.tool_calls:
            for call in reply.tool_calls:
                result = TOOLS[call.name].invoke(call)
                print(f"[{call.name}({call.arguments}) -> {result.output}]")
                session.tool(call.name, result.output)
            reply = await session.update()

        print(reply.without_thinking().text)


if __name__ == "__main__":
    asyncio.run(main())
