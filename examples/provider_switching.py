"""Demonstrates switching providers at runtime.

Set credentials for each provider you want to try:

  OPENAI_API_KEY=sk-...
  ANTHROPIC_API_KEY=sk-ant-...
  OPENROUTER_API_KEY=sk-or-...

The call below is IDENTICAL regardless of provider.
"""

import asyncio

from chat_gateway import ChatGateway


async def main() -> None:
    async with ChatGateway() as gateway:
        for preset in ("fast", "balanced"):
            gateway.use(preset)
            resp = await gateway.chat(
                "greeting", [{"role": "user", "content": "Say hello!"}]
            )
            print(f"{gateway.profile.provider}/{gateway.profile.model}: {resp.content}")

        gateway.switch_provider("openrouter", "anthropic/claude-3-haiku")
        resp = await gateway.chat("greeting", [{"role": "user", "content": "Say hello!"}])
        print(f"openrouter: {resp.content}")


if __name__ == "__main__":
    asyncio.run(main())
