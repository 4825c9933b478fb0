import logging
import os
import sys

import dotenv
import httpx

from stewrd._sse import FrameBuffer, parse_block
from stewrd._normalize import normalize_event

dotenv.load_dotenv()

# Muestra los bloques descartados por el decoder
logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s - %(message)s")
logging.getLogger("httpcore").setLevel(logging.INFO)

base_url = os.getenv("STEWRD_BASE_URL", "https://api.stewrd.dev")
message = sys.argv[1] if len(sys.argv) > 1 else "Say: hola"

frames = FrameBuffer()

with httpx.stream(
    "POST",
    f"{base_url}/v1/agent",
    headers={
        "Authorization": f"Bearer {os.environ['STEWRD_API_KEY']}",
        "Accept": "text/event-stream",
    },
    json={"message": message, "stream": True},
    timeout=120.0,
) as r:
    print("status=", r.status_code, "content-type=", r.headers.get("content-type"))
    for i, chunk in enumerate(r.iter_bytes()):
        print(f"chunk {i} len={len(chunk)} raw={chunk!r}")
        for block in frames.feed(chunk):
            parsed = parse_block(block)
            print("  block:", repr(block))
            print("  event:", normalize_event(parsed.event, parsed.data) if parsed else None)

    for block in frames.flush():
        parsed = parse_block(block)
        print("flushed block:", repr(block))
        print("  event:", normalize_event(parsed.event, parsed.data) if parsed else None)
