import asyncio
import json


class DummyWebSocket:
    """starlette WebSocket 대역: accept / send_text / close만 흉내."""

    def __init__(self, delay=0.0, fail=False):
        self.accepted = False
        self.closed_with = None
        self.messages = []
        self.delay = delay
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("socket is gone")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.messages.append(json.loads(text))

    async def close(self, code=1000):
        self.closed_with = code
