# examples/quickstart.py
"""
Quickstart: rotate across the built-in Groq and Cerebras catalog.

Run with:
  GROQ_API_KEY=... CEREBRAS_API_KEY=... python examples/quickstart.py
"""

import asyncio

from llm_rotator import AllModelsExhaustedError, RotatorClient


async def main():
    client = RotatorClient.from_dict({"strategy": "least-used"})

    async with client:
        for question in (
            "Summarise the benefits of functional programming.",
            "Name three uses of a Bloom filter.",
        ):
            try:
                result = await client.chat([{"role": "user", "content": question}])
            except AllModelsExhaustedError as exc:
                print(exc)
                return

            text = await result.text()
            usage = await result.stream.usage
            print(f"Model:      {result.model.label}")
            print(f"Skipped:    {len(result.skipped)}")
            print(f"Content:    {text[:200]}...")
            print(f"Tokens in:  {usage.input_tokens}")
            print(f"Tokens out: {usage.output_tokens}\n")

        # Status overview
        for entry in client.status():
            info = entry["rate_limit"]
            state = "available" if entry["available"] else entry["reason"]
            print(
                f"{entry['model'].label}: requests {info.remaining_requests}/{info.limit_requests}, "
                f"tokens {info.remaining_tokens}/{info.limit_tokens}, {state}"
            )


if __name__ == "__main__":
    asyncio.run(main())
