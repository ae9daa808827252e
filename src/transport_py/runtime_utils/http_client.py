import os
from dataclasses import dataclass

from aiohttp import ClientSession, ClientTimeout

HTTP_TIMEOUT_SECONDS = int(os.environ.get("HTTP_TIMEOUT_SECONDS", "60"))


@dataclass
class HttpResponse:
    """status and raw body of a completed GET"""

    status: int
    body: bytes


class HttpClient:
    """
    Thin wrapper around an aiohttp session so the snapshot code only sees
    (status, body) pairs. Network problems are raised as aiohttp.ClientError
    or asyncio.TimeoutError, non 200 statuses are not raised.
    """

    def __init__(self, session: ClientSession):
        self.session = session

    async def get(self, url: str) -> HttpResponse:
        """GET a url, following redirects"""
        async with self.session.get(url, allow_redirects=True) as response:
            body = await response.read()
            return HttpResponse(status=response.status, body=body)


def new_session() -> ClientSession:
    """session with the pipeline wide timeout applied"""
    return ClientSession(timeout=ClientTimeout(total=HTTP_TIMEOUT_SECONDS))
