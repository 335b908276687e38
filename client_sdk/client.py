import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class SpecflowClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SpecflowClient:
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = await self.client.request(method, path, json=json_body)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            try:
                detail = e.response.json().get("detail", e.response.text)
            except ValueError:
                detail = e.response.text
            logger.warning("%s %s rejected with status=%s: %s", method, path, e.response.status_code, detail)
            raise SpecflowClientError(str(detail), status_code=e.response.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise SpecflowClientError(str(e)) from e

    async def health(self) -> bool:
        try:
            await self._request("GET", "/health")
            return True
        except SpecflowClientError:
            return False

    async def list_projects(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/projects")

    async def create_project(self, name: str, repo_path: str, test_command: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/projects",
            json_body={"name": name, "repoPath": repo_path, "testCommand": test_command},
        )

    async def start_test_run(self, project_id: str, file_path: Optional[str] = None) -> str:
        body: Dict[str, Any] = {}
        if file_path:
            body["filePath"] = file_path
        data = await self._request("POST", f"/projects/{project_id}/test-runs", json_body=body)
        return data["runId"]

    async def get_test_run(self, project_id: str, run_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/projects/{project_id}/test-runs/{run_id}")

    async def start_generation(self, prompt: str) -> str:
        data = await self._request("POST", "/jobs/generations", json_body={"prompt": prompt})
        return data["jobId"]

    async def get_job(self, job_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/jobs/{job_id}")

    async def close(self):
        await self.client.aclose()
