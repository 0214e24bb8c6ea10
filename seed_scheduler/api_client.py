# seed_scheduler/api_client.py
from typing import Any, Dict, List, Optional

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import ConcurrentModification, NotFound, StoreError, StoreUnavailable, ValidationRejected
from .models import CloudProfile, Seed, Shoot


class ControllerClient:
    """
    Read/write access to the garden controller, the store of shoots, seeds
    and cloud profiles. HTTP failures are mapped onto the scheduler's error
    taxonomy so the reconcile loop never sees a requests exception.
    """

    def __init__(self, base_url: str = "http://localhost:8001", token: Optional[str] = None, timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = self._make_session(self.token)

    @classmethod
    def from_settings(cls, settings) -> "ControllerClient":
        return cls(settings.controller_base_url, settings.controller_token or None, settings.request_timeout)

    def _make_session(self, token):
        s = Session()
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        s.headers.update(headers)
        # only idempotent reads are retried by urllib3; writes go through the reconcile backoff
        retries = Retry(total=3, backoff_factor=0.5, status_forcelist=(502, 503, 504),
                        allowed_methods=frozenset(["GET"]), raise_on_status=False)
        s.mount("http://", HTTPAdapter(max_retries=retries))
        s.mount("https://", HTTPAdapter(max_retries=retries))
        return s

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreUnavailable(f"{method} {url}: {e}") from e

        if resp.status_code >= 500:
            raise StoreUnavailable(f"{method} {url}: HTTP {resp.status_code}")
        if resp.status_code == 404:
            raise NotFound(f"{method} {url}: {_detail(resp)}")
        if resp.status_code == 409:
            raise ConcurrentModification(f"{method} {url}: {_detail(resp)}")
        if resp.status_code in (400, 422):
            raise ValidationRejected(f"{method} {url}: {_detail(resp)}")
        if resp.status_code >= 400:
            raise StoreError(f"{method} {url}: HTTP {resp.status_code} {_detail(resp)}")
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # --- reads ---

    def list_shoots(self) -> List[Shoot]:
        return [Shoot(**s) for s in self._request("GET", "/shoots")]

    def get_shoot(self, namespace: str, name: str) -> Shoot:
        return Shoot(**self._request("GET", f"/shoots/{namespace}/{name}"))

    def list_seeds(self) -> List[Seed]:
        return [Seed(**s) for s in self._request("GET", "/seeds")]

    def list_cloud_profiles(self) -> List[CloudProfile]:
        return [CloudProfile(**p) for p in self._request("GET", "/cloudprofiles")]

    # --- writes ---

    def bind_seed(self, shoot: Shoot, seed_name: str) -> Shoot:
        """Conditional update of the shoot's seed, guarded by its resource_version."""
        payload = {"seed_name": seed_name, "resource_version": shoot.resource_version}
        data = self._request("PUT", f"/shoots/{shoot.namespace}/{shoot.name}/binding", json=payload)
        return Shoot(**data)

    def record_event(self, shoot: Shoot, type: str, reason: str, message: str) -> Dict[str, Any]:
        payload = {"type": type, "reason": reason, "message": message}
        return self._request("POST", f"/shoots/{shoot.namespace}/{shoot.name}/events", json=payload)


def _detail(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)[:200]
