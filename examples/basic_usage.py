"""Basic usage of chat-gateway."""

import asyncio
import json

from chat_gateway import ChatGateway, stream_text


async def main() -> None:
    """Demonstrate a plain call, a JSON call and a streamed call."""
    # ChatGateway reads LLM_* env vars automatically
    async with ChatGateway(user_id="demo") as gateway:
        resp = await gateway.chat(
            "capital_lookup",
            [{"role": "user", "content": "What is the capital of France?"}],
        )
        print(f"Answer: {resp.content}")
        print(f"Tokens: {resp.usage.total_tokens}")

        resp = await gateway.chat(
            "capital_lookup",
            [
                {"role": "system", "content": 'Reply as JSON: {"city": ..., "country": ...}'},
                {"role": "user", "content": "Capital of Japan?"},
            ],
            return_json=True,
        )
        print(f"Parsed: {json.loads(resp.content)}")

        def show(chunk):  # type: ignore[no-untyped-def]
            text = stream_text(chunk)
            if text:
                print(text, end="", flush=True)

        await gateway.chat(
            "story",
            [{"role": "user", "content": "Tell a two-sentence story."}],
            temperature=0.8,
            chunk_callback=show,
        )
        print()


if __name__ == "__main__":
    asyncio.run(main())
