import dotenv

from stewrd import Stewrd

dotenv.load_dotenv()

client = Stewrd()

with client.agent.stream(
    "Research the three most popular Python HTTP clients and compare them",
    capabilities=["research"],
) as stream:
    for event in stream:
        if event.type == "token":
            print(event.content, end="", flush=True)
        elif event.type == "tool_start":
            print(f"\n[using {event.tool}...]")
        elif event.type == "tool_end":
            print(f"[{event.tool} done]")
        elif event.type == "error":
            print(f"\n[error {event.error.code}] {event.error.message}")
        elif event.type == "done":
            print(f"\n\nrun={event.response.id} tokens={event.usage.tokens_used}")

client.close()
