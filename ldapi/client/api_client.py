import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """서버가 2xx(또는 처리 가능한 409)가 아닌 응답을 돌려줬을 때"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class RemovalOutcome:
    removed: bool
    confirmation: Optional[Dict[str, Any]] = None


class MembershipApiClient:
    """
    멤버십 REST API에 대한 비동기 클라이언트입니다.
    타임아웃과 재시도는 전송 계층(httpx)의 설정을 따릅니다.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, private: bool = False,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._private = private
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        self._client = httpx.AsyncClient(base_url=self._base_url, headers=headers, transport=self._transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def list_members(self, project: str) -> List[Tuple[str, str]]:
        response = await self._request("GET", f"/api/projects/{project}/members")
        return [(item["user"], item["role"]) for item in response.json()]

    async def add_member(self, project: str, login: str, role: Any = None, confirmed: bool = False) -> Dict[str, Any]:
        response = await self._request("POST", f"/api/projects/{project}/user/{login}", json=role,
                                       confirmed=confirmed, accept_conflict=True)
        return response.json()

    async def remove_member(self, project: str, login: str, confirmed: bool = False) -> RemovalOutcome:
        response = await self._request("DELETE", f"/api/projects/{project}/user/{login}",
                                       confirmed=confirmed, accept_conflict=True)
        if response.status_code == 409:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if not isinstance(payload, dict):
                logger.warning("DELETE %s/%s returned a malformed confirmation body", project, login)
                raise ApiError(409, "Malformed confirmation response from server.")
            return RemovalOutcome(removed=False, confirmation=payload)
        return RemovalOutcome(removed=True)

    async def _request(self, method: str, path: str, json: Any = None, confirmed: bool = False,
                       accept_conflict: bool = False) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("Client is not open; use 'async with' or call open() first.")

        params = {}
        if self._private:
            params["private"] = "true"
        if confirmed:
            params["confirmed"] = "true"

        response = await self._client.request(method, path, params=params, json=json)
        if response.is_success or (accept_conflict and response.status_code == 409):
            return response

        try:
            message = response.json().get("message", response.reason_phrase)
        except (ValueError, AttributeError):
            message = response.reason_phrase
        logger.warning("%s %s failed: %d %s", method, path, response.status_code, message)
        raise ApiError(response.status_code, message)
