"""HTTP客户端

对服务端接口的薄封装，返回客户端缓存模型；非2xx响应抛出 APIError。
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic.alias_generators import to_camel

from tracker.client.models import Comment, Project, Task, TeamMember
from tracker.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"

def normalize_base_url(url: Optional[str]) -> str:
    """规范化服务地址：空值使用默认地址，缺少协议时补 https，去掉末尾斜杠"""
    url = (url or "").strip()
    if not url:
        return DEFAULT_BASE_URL
    if "://" not in url:
        url = f"https://{url}"
    return url.rstrip("/")

class APIError(Exception):
    """服务端返回非2xx响应"""

    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload

def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail") or body.get("error")
        if message:
            return str(message)
    return response.reason_phrase

def _to_payload(fields: Dict[str, Any]) -> Dict[str, Any]:
    """snake_case参数转为camelCase请求体，日期转为ISO字符串"""
    payload = {}
    for key, value in fields.items():
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, tuple):
            value = list(value)
        elif hasattr(value, "value"):
            value = value.value
        payload[to_camel(key)] = value
    return payload

class TrackerAPI:
    """项目跟踪服务的异步客户端"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = normalize_base_url(base_url if base_url is not None else settings.API_URL)
        self.token = token
        self._owns_client = client is None
        if client is None:
            kwargs: Dict[str, Any] = {"base_url": self.base_url}
            if timeout is not None:
                kwargs["timeout"] = timeout
            if transport is not None:
                kwargs["transport"] = transport
            client = httpx.AsyncClient(**kwargs)
        self._client = client

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "TrackerAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = await self._client.request(method, f"{self.base_url}{path}", json=json, headers=headers)
        if response.is_error:
            message = _error_message(response)
            logger.debug("%s %s failed: %s %s", method, path, response.status_code, message)
            raise APIError(response.status_code, message, payload=response.text)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # 认证
    async def register(self, email: str, password: str, name: str) -> Dict[str, Any]:
        data = await self._request("POST", "/auth/register", {"email": email, "password": password, "name": name})
        self.token = data["token"]
        return data

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._request("POST", "/auth/login", {"email": email, "password": password})
        self.token = data["token"]
        return data

    async def me(self) -> Dict[str, Any]:
        data = await self._request("GET", "/auth/me")
        return data["user"]

    async def health(self) -> Dict[str, Any]:
        return await self._request("GET", "/health")

    # 项目
    async def list_projects(self) -> List[Project]:
        data = await self._request("GET", "/projects")
        return [Project.model_validate(item) for item in data]

    async def get_project(self, project_id: str) -> Project:
        data = await self._request("GET", f"/projects/{project_id}")
        return Project.model_validate({**data, "tasksLoaded": True})

    async def create_project(
        self,
        name: str,
        tags: Optional[Sequence[str]] = None,
        priority: Optional[str] = None,
        deadline: Optional[date] = None,
    ) -> Project:
        fields: Dict[str, Any] = {"name": name}
        if tags is not None:
            fields["tags"] = list(tags)
        if priority is not None:
            fields["priority"] = priority
        if deadline is not None:
            fields["deadline"] = deadline
        data = await self._request("POST", "/projects", _to_payload(fields))
        return Project.model_validate({**data, "tasksLoaded": True})

    async def update_project(self, project_id: str, **fields: Any) -> Project:
        """部分更新；只发送传入的字段"""
        data = await self._request("PUT", f"/projects/{project_id}", _to_payload(fields))
        return Project.model_validate({**data, "tasksLoaded": True})

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    # 任务
    async def list_tasks(self, project_id: str) -> List[Task]:
        data = await self._request("GET", f"/projects/{project_id}/tasks")
        return [Task.model_validate(item) for item in data]

    async def create_task(self, project_id: str, name: str, **fields: Any) -> Task:
        payload = _to_payload({"name": name, **fields})
        data = await self._request("POST", f"/projects/{project_id}/tasks", payload)
        return Task.model_validate(data)

    async def update_task(self, project_id: str, task_id: str, **fields: Any) -> Task:
        """部分更新；显式传入 None 会清空可空字段"""
        data = await self._request("PUT", f"/projects/{project_id}/tasks/{task_id}", _to_payload(fields))
        return Task.model_validate(data)

    async def delete_task(self, project_id: str, task_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}/tasks/{task_id}")

    async def add_comment(self, project_id: str, task_id: str, text: str, author_id: Optional[str] = None) -> Comment:
        payload = _to_payload({"text": text, "author_id": author_id})
        data = await self._request("POST", f"/projects/{project_id}/tasks/{task_id}/comments", payload)
        return Comment.model_validate(data)

    async def delete_comment(self, project_id: str, task_id: str, comment_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}/tasks/{task_id}/comments/{comment_id}")

    # 团队成员
    async def list_team(self) -> List[TeamMember]:
        data = await self._request("GET", "/team")
        return [TeamMember.model_validate(item) for item in data]

    async def create_team_member(self, name: str) -> TeamMember:
        data = await self._request("POST", "/team", {"name": name})
        return TeamMember.model_validate(data)

    async def update_team_member(self, member_id: str, name: str) -> TeamMember:
        data = await self._request("PUT", f"/team/{member_id}", {"name": name})
        return TeamMember.model_validate(data)

    async def delete_team_member(self, member_id: str) -> None:
        await self._request("DELETE", f"/team/{member_id}")
