"""Request/response models and the network fetcher used by the cache process."""

import copy
import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse, urlencode, urlsplit, urlunsplit, parse_qsl

import requests

from ..exceptions import NetworkError


@dataclass
class Request:
    """A resource request intercepted by the cache process."""
    url: str
    method: str = "GET"
    # "navigate" for page loads, "no-cors"/"cors" for subresources
    mode: str = "no-cors"
    # "no-store" bypasses every cache and hits the network
    cache: str = "default"
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """A resource response; `type` is "basic" for same-origin responses."""
    url: str
    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    type: str = "basic"
    
    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
    
    def clone(self) -> 'Response':
        """Return an independent copy (one copy is stored, the other returned)."""
        return Response(
            url=self.url,
            status=self.status,
            headers=copy.copy(self.headers),
            body=bytes(self.body),
            type=self.type,
        )
    
    def text(self) -> str:
        return self.body.decode("utf-8")
    
    def json(self) -> Any:
        return json.loads(self.text())


def resolve_url(origin: str, url: str) -> str:
    """
    Resolve a (possibly relative) URL against the shell origin.
    
    Examples:
        resolve_url("http://host/", "./index.html") -> "http://host/index.html"
    """
    return urljoin(origin, url)


def same_origin(a: str, b: str) -> bool:
    """Return True if both URLs share scheme, host and port."""
    pa = urlparse(a)
    pb = urlparse(b)
    return (pa.scheme, pa.netloc) == (pb.scheme, pb.netloc)


def cache_busted(url: str, now_ms: Optional[int] = None) -> str:
    """Append a `_=<ms>` query parameter so no intermediate cache can answer."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append(("_", str(now_ms if now_ms is not None else int(time.time() * 1000))))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class NetworkFetcher:
    """Performs live network fetches for the shell origin."""
    
    def __init__(self, origin: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        """
        Initialize the fetcher.
        
        Args:
            origin: Shell origin; relative URLs resolve against it
            timeout: Per-request timeout in seconds
            session: Optional requests session (injected in tests)
        """
        self.origin = origin
        self.timeout = timeout
        self.session = session or requests.Session()
    
    def fetch(self, request: Request) -> Response:
        """
        Fetch a request from the network.
        
        Any HTTP status is returned as a Response; only transport failures
        (offline, DNS, timeout) raise.
        
        Raises:
            NetworkError: If the request could not be completed
        """
        url = resolve_url(self.origin, request.url)
        headers = dict(request.headers)
        target = url
        if request.cache in ("no-store", "reload"):
            headers["Cache-Control"] = "no-cache"
            headers["Pragma"] = "no-cache"
            target = cache_busted(url)
        
        try:
            raw = self.session.request(request.method, target, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"Fetch failed for {url}: {e}") from e
        
        return Response(
            url=url,
            status=raw.status_code,
            headers=dict(raw.headers),
            body=raw.content,
            type="basic" if same_origin(url, self.origin) else "cors",
        )
    
    __call__ = fetch
