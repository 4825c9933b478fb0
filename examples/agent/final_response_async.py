import asyncio

import dotenv

from stewrd import Stewrd

dotenv.load_dotenv()


async def main() -> None:
    async with Stewrd() as client:
        stream = await client.agent.astream(
            "Write a short README for a CSV cleaning script",
            capabilities=["documents"],
            files=[{"name": "clean.py", "content": "import csv\n"}],
        )
        async with stream:
            response = await stream.final_response()

    print(response.message)
    for f in response.files:
        print(f"- {f.name}: {f.url or '(inline)'}")
    print(f"{response.usage.requests_used}/{response.usage.requests_limit} requests used")


asyncio.run(main())
