import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util import Retry


def _get_session(
    retry: bool = True,
    total: int = 3,
    backoff_factor: float = 0.5,
    status_forcelist: tuple = (500, 502, 503, 504),
) -> Session:
    """Return a requests Session, optionally retrying failed idempotent requests."""

    session = requests.Session()

    if retry:
        # training requests use PATCH and must not be replayed
        retries = Retry(
            total=total,
            backoff_factor=backoff_factor,
            status_forcelist=status_forcelist,
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

    return session
