# examples/streaming.py
"""
Streaming chat completion on an explicitly chosen model.

Run with:
  GROQ_API_KEY=... python examples/streaming.py
"""

import asyncio

from llm_rotator import RotatorClient


async def main():
    client = RotatorClient.from_dict({"providers": ["groq"]})

    async with client:
        print("Streaming response:\n")
        result = await client.chat(
            [{"role": "user", "content": "Write a haiku about rate limits."}],
            model="llama-3.3-70b-versatile",
            temperature=0.9,
        )
        async for chunk in result:
            print(chunk, end="", flush=True)

        usage = await result.stream.usage
        print(f"\n\n[{result.model.label}: {usage.input_tokens} in / {usage.output_tokens} out]")


if __name__ == "__main__":
    asyncio.run(main())
