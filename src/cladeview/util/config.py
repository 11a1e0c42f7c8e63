import os
from dataclasses import asdict, dataclass
from pprint import pformat


@dataclass
class Config:
    # the original web client talked to a local Django instance by default
    api_url: str = "http://localhost:8000"
    api_prefix: str = "/api/v1"
    # the research API issues JWTs and expects the "JWT" scheme
    auth_scheme: str = "JWT"
    default_page_size: int = 10
    # clades with more children than this are considered "large"
    min_clade_length: int = 10
    request_timeout: float = 30.0
    retry: bool = True
    retry_total: int = 3
    retry_backoff_factor: float = 0.5
    retry_status_forcelist: tuple = (500, 502, 503, 504)

    def __post_init__(self):
        if api_url := os.environ.get("CLADEVIEW_API_URL"):
            self.api_url = api_url
        if auth_scheme := os.environ.get("CLADEVIEW_AUTH_SCHEME"):
            self.auth_scheme = auth_scheme
        if min_clade_length := os.environ.get("CLADEVIEW_MIN_CLADE_LENGTH"):
            self.min_clade_length = int(min_clade_length)

        self.api_url = self.api_url.rstrip("/")

    @property
    def base_url(self) -> str:
        """Root URL that every API path is appended to."""
        return f"{self.api_url}{self.api_prefix}"

    def __repr__(self):
        return pformat(asdict(self))
