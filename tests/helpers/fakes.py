import asyncio

from feewatch.utils.errors import SendError


class FakeSource:
    """
    Scripted metric source. Each fetch() pops the next item: ints are
    returned, exceptions raised. When the script runs out, `on_exhausted`
    (an asyncio.Event) is set and fetch() hangs until cancelled.
    """
    def __init__(self, script=None, on_exhausted=None):
        self.script = list(script or [])
        self.on_exhausted = on_exhausted
        self.calls = 0
        self.cancelled = False

    async def fetch(self):
        self.calls += 1
        if not self.script:
            if self.on_exhausted is not None:
                self.on_exhausted.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeNotifier:
    """Records delivered texts. Calls whose index is in `fail_on` raise SendError."""
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = 0
        self.sent = []

    async def notify(self, text):
        i = self.calls
        self.calls += 1
        if i in self.fail_on:
            raise SendError("boom", status=500)
        self.sent.append(text)


class FakeResponse:
    def __init__(self, status=200, payload=None, text="", json_error=None):
        self.status = status
        self._payload = payload
        self._text = text
        self._json_error = json_error

    async def json(self, **kwargs):
        if self._json_error is not None:
            raise self._json_error
        return self._payload

    async def text(self):
        return self._text


class _Ctx:
    def __init__(self, outcome):
        self._outcome = outcome

    async def __aenter__(self):
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """
    Minimal aiohttp.ClientSession stand-in. `routes` maps (METHOD, url) to a
    FakeResponse or an exception raised on entering the request context.
    """
    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []
        self.closed = False

    def _request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        outcome = self.routes.get((method, url))
        if outcome is None:
            outcome = FakeResponse(status=404)
        return _Ctx(outcome)

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)

    async def close(self):
        self.closed = True
