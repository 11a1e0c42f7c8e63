"""HTTP client for the phylogenetic research API."""

from dataclasses import dataclass, field
from uuid import UUID

import requests
import structlog
from requests import Response, Session

from cladeview.auth import TokenProvider, no_token
from cladeview.exceptions import AuthError, TransportError
from cladeview.util.config import Config
from cladeview.util.session import _get_session

logger = structlog.get_logger()


@dataclass
class Page:
    """One page of a list response."""

    results: list = field(default_factory=list)
    count: int | None = None
    next: str | None = None
    previous: str | None = None

    @classmethod
    def from_api(cls, data) -> "Page":
        # some list endpoints return a bare JSON array
        if isinstance(data, list):
            return cls(results=data, count=len(data))
        data = data or {}
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected list response: {data!r:.200}", payload=data)
        results = data.get("results") or []
        return cls(
            results=results,
            count=data.get("count", len(results)),
            next=data.get("next"),
            previous=data.get("previous"),
        )


def build_list_params(
    page: int | None = None, page_size: int | None = None, query: str | None = None, default_page_size: int = 10
) -> dict:
    """Return query parameters for a list request.

    The API names them ``ps`` (page size, always sent), ``p`` (page) and
    ``q`` (filter term).
    """
    params = {"ps": page_size or default_page_size}
    if query:
        params["q"] = query
    if page:
        params["p"] = page
    return params


def _decode(response: Response):
    try:
        return response.json()
    except ValueError:
        return response.text


class ApiClient:
    """Blocking client for the research API.

    Parameters
    ----------
    config : :class:`cladeview.util.config.Config` | None
        Connection settings. Defaults to ``Config()``.
    token_provider : Callable[[], str | None] | None
        Returns the current credential. Requests are sent without an
        Authorization header when it returns None.
    session : requests.Session | None
        Session to send requests with. Defaults to a retrying session built
        from ``config``.

    All methods raise :class:`cladeview.exceptions.TransportError` (or its
    subclass :class:`cladeview.exceptions.AuthError`) when a request fails.
    """

    def __init__(
        self, config: Config | None = None, token_provider: TokenProvider | None = None, session: Session | None = None
    ):
        self.config = config or Config()
        self.token_provider = token_provider or no_token
        if session is None:
            session = _get_session(
                retry=self.config.retry,
                total=self.config.retry_total,
                backoff_factor=self.config.retry_backoff_factor,
                status_forcelist=self.config.retry_status_forcelist,
            )
        self.session = session

    def __repr__(self):
        return f"ApiClient(base_url={self.config.base_url!r})"

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"{self.config.auth_scheme} {token}"
        return headers

    def _request(self, method: str, path: str, params: dict | None = None, json=None):
        url = f"{self.config.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as err:
            logger.error("Request failed", method=method, url=url, error=repr(err))
            raise TransportError(f"{method} {url} failed: {err}", url=url) from err

        if not response.ok:
            payload = _decode(response)
            error_class = AuthError if response.status_code in (401, 403) else TransportError
            logger.warning(
                "Request rejected",
                method=method,
                url=url,
                status_code=response.status_code,
                response_text=response.text,
            )
            raise error_class(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                payload=payload,
                url=url,
            )

        if not response.content:
            return None
        return _decode(response)

    def _list(self, path: str, page: int | None, page_size: int | None, query: str | None) -> Page:
        params = build_list_params(page, page_size, query, default_page_size=self.config.default_page_size)
        return Page.from_api(self._request("GET", path, params=params))

    def list_projects(self, page: int | None = None, page_size: int | None = None, query: str | None = None) -> Page:
        return self._list("/projs/", page, page_size, query)

    def get_project(self, project_id: UUID) -> dict:
        return self._request("GET", f"/projs/{project_id}")

    def list_trees(
        self, project_id: UUID, page: int | None = None, page_size: int | None = None, query: str | None = None
    ) -> Page:
        return self._list(f"/{project_id}/trees/", page, page_size, query)

    def get_tree(self, project_id: UUID, tree_id: UUID) -> dict:
        return self._request("GET", f"/{project_id}/trees/{tree_id}")

    def list_clades(
        self, tree_id: UUID, page: int | None = None, page_size: int | None = None, query: str | None = None
    ) -> Page:
        """Return one page of a tree's clades."""
        return self._list(f"/{tree_id}/clades/", page, page_size, query)

    def get_clade(self, tree_id: UUID, clade_id: UUID) -> dict:
        return self._request("GET", f"/{tree_id}/clades/{clade_id}")

    def train_clade(self, source_clade: UUID, feature_set: UUID) -> dict:
        """Train a classifier for a clade and return the server's model summary.

        The request blocks until the server has finished training.
        """
        return self._request("PATCH", f"/{source_clade}/models/{feature_set}/train")
