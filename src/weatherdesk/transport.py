# OOP boundary for http i/o
# one thread-local session per ThreadPoolExecutor worker
# connection failures may be retried here, http statuses never are: 429/5xx must reach the classifier

from __future__ import annotations
import logging
import threading
from typing import Any, Dict

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.tomorrow.io/v4"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "weatherdesk/0.1"


class HttpTransport:

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        connect_retries: int = 2,
        backoff_factor: float = 0.5,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

        # each worker thread lazily obtains its own session through _session()
        self._local = threading.local()

        self._retry = Retry(
            total=connect_retries,
            connect=connect_retries,
            read=0,
            status=0,
            other=0,
            backoff_factor=backoff_factor,
            status_forcelist=(),
            allowed_methods=("GET",),
            raise_on_status=False,
        )

    def _build_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update({"User-Agent": self.user_agent, "Accept": "application/json"})
        adapter = HTTPAdapter(max_retries=self._retry)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        return s

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self._build_session()
            self._local.session = sess
        return sess

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        # connection errors and timeouts propagate untouched (no response attached)
        resp = self._session().get(self.url_for(path), params=params, timeout=self.timeout)

        if resp.status_code >= 400:
            snippet = (resp.text or "")[:300]
            logger.debug(f"HTTP {resp.status_code} from {path}: {snippet}")
            raise requests.HTTPError(f"HTTP {resp.status_code} for {path}", response=resp)

        try:
            return resp.json()
        except ValueError as exc:
            # keep the response attached so the classifier sees it came back
            raise requests.HTTPError(f"Invalid JSON from {path}: {exc}", response=resp) from exc

    def close(self) -> None:
        sess = getattr(self._local, "session", None)
        if sess is not None:
            sess.close()
            self._local.session = None
