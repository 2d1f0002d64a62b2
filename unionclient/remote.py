"""
Remote backend client

Thin async wrapper over the site's REST API. Every call either returns data
or raises a RemoteError subclass; the reconciliation layer turns those into
Err outcomes.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from unionclient.errors import RemoteError, RemoteTimeoutError
from unionclient.models import Member, Post, SiteSettings

logger = logging.getLogger(__name__)


class RemoteBackend:
    """
    Client for the /api/v1 endpoints.

    `transport` lets tests run against the ASGI app in-process
    (httpx.ASGITransport) or inject failures (httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        access_token: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.access_token = access_token

    def _headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        parse: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """
        Send one request and return the decoded body, passed through `parse`
        when given. Bodies that are not JSON or do not parse raise RemoteError.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    headers=self._headers(),
                )
        except httpx.TimeoutException as e:
            raise RemoteTimeoutError(f"{method} {path} timed out") from e
        except httpx.ConnectError as e:
            raise RemoteError(f"Cannot connect to server: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise RemoteError(_error_message(response), status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            data = response.json()
            return parse(data) if parse else data
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise RemoteError(
                f"{method} {path} returned an unreadable body: {e!r}",
                status_code=response.status_code,
            ) from e

    # ---------- auth ----------

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._request(
            "POST", "/auth/signup", json={"email": email, "password": password}, parse=_session_body
        )
        self.access_token = data.get("access_token")
        return data["user"]

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}, parse=_session_body
        )
        self.access_token = data.get("access_token")
        return data["user"]

    async def sign_in_admin(self, pin: str) -> None:
        data = await self._request("POST", "/auth/admin", json={"pin": pin})
        self.access_token = data.get("access_token")

    async def sign_out(self) -> None:
        try:
            if self.access_token:
                await self._request("POST", "/auth/logout")
        finally:
            self.access_token = None

    async def get_session(self) -> Optional[Dict[str, Any]]:
        if not self.access_token:
            return None
        try:
            data = await self._request("GET", "/auth/session")
        except RemoteError as e:
            if e.status_code == 401:
                return None
            raise
        return data.get("user")

    async def request_password_reset(self, email: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/password-reset", json={"email": email})

    async def update_password(self, new_password: str, reset_token: Optional[str] = None) -> None:
        body: Dict[str, Any] = {"password": new_password}
        if reset_token:
            body["reset_token"] = reset_token
        await self._request("POST", "/auth/password-update", json=body)

    # ---------- posts ----------

    async def fetch_posts(self) -> List[Post]:
        return await self._request("GET", "/posts", parse=lambda data: [Post.from_dict(p) for p in data])

    async def fetch_post(self, post_id: str) -> Optional[Post]:
        try:
            return await self._request("GET", f"/posts/{post_id}", parse=Post.from_dict)
        except RemoteError as e:
            if e.status_code == 404:
                return None
            raise

    async def save_post(self, post: Post) -> Post:
        return await self._request("PUT", f"/posts/{post.id}", json=post.to_dict(), parse=Post.from_dict)

    async def delete_post(self, post_id: str) -> None:
        await self._request("DELETE", f"/posts/{post_id}")

    async def increment_views(self, post_id: str) -> int:
        return await self._request("POST", f"/posts/{post_id}/views", parse=lambda data: int(data["views"]))

    # ---------- members ----------

    async def fetch_members(self) -> List[Member]:
        return await self._request("GET", "/members", parse=lambda data: [Member.from_dict(m) for m in data])

    async def fetch_member(self, member_id: str) -> Optional[Member]:
        try:
            return await self._request("GET", f"/members/{member_id}", parse=Member.from_dict)
        except RemoteError as e:
            if e.status_code == 404:
                return None
            raise

    async def save_member(self, member: Member) -> Member:
        return await self._request(
            "PUT", f"/members/{member.id}", json=member.public().to_dict(), parse=Member.from_dict
        )

    async def delete_member(self, member_id: str) -> None:
        await self._request("DELETE", f"/members/{member_id}")

    # ---------- settings ----------

    async def fetch_settings(self) -> SiteSettings:
        return await self._request("GET", "/settings", parse=SiteSettings.from_dict)

    async def save_settings(self, settings: SiteSettings) -> SiteSettings:
        return await self._request("PUT", "/settings", json=settings.to_dict(), parse=SiteSettings.from_dict)

    # ---------- push ----------

    async def push_subscribe(self, subscription: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/push/subscribe", json=subscription)

    async def push_unsubscribe(self, endpoint: str) -> None:
        await self._request("POST", "/push/unsubscribe", json={"endpoint": endpoint})


def _session_body(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict) or not isinstance(data.get("user"), dict):
        raise ValueError("missing user")
    return data


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        if "detail" in data:
            detail = data["detail"]
            return detail if isinstance(detail, str) else str(detail)
        if isinstance(data.get("error"), dict):
            return data["error"].get("message", "")
    return f"HTTP {response.status_code}"
