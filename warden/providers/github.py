"""
GitHub provider client.

Wraps the handful of REST endpoints the actions need: opening and closing
repository security advisories, and issuing arbitrary API requests for REST
remediations. Also renders the curl equivalent of a request for dry runs.
"""

import json
import logging
import shlex
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import httpx
from pydantic import BaseModel

from warden import config
from warden.errors import ProviderError

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"


class AdvisoryVulnerability(BaseModel):
    """Affected package entry of a security advisory."""
    package_name: str
    ecosystem: str = "other"

    def to_api(self) -> Dict[str, Any]:
        return {"package": {"ecosystem": self.ecosystem, "name": self.package_name}}


class ProviderResponse(BaseModel):
    status_code: int
    body: Any = None


def _github_headers(token: Optional[str]) -> dict:
    """Get GitHub API headers, with authentication when a token is configured."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def generate_curl_command(method: str, base_url: str, endpoint: str, body: str = "") -> str:
    """
    Render the curl command equivalent to an API call.

    The token is never included; the command references $GITHUB_TOKEN instead.
    """
    if not method:
        raise ValueError("method cannot be empty")
    url = urljoin(base_url, endpoint.lstrip("/"))
    parts = [
        "curl -L",
        f"-X {method.upper()}",
        '-H "Accept: application/vnd.github+json"',
        '-H "Authorization: Bearer $GITHUB_TOKEN"',
        f'-H "X-GitHub-Api-Version: {GITHUB_API_VERSION}"',
        shlex.quote(url),
    ]
    if body:
        parts.append(f"-d {shlex.quote(body)}")
    return " \\\n  ".join(parts)


class GitHubClient:
    """Async GitHub REST client. Stateless apart from its configuration."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self._token = token if token is not None else config.get_github_token()
        self.base_url = base_url or config.get_github_api_url()
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        self.timeout = timeout if timeout is not None else config.get_provider_timeout()

    def get_base_url(self) -> str:
        return self.base_url

    async def _request(self, method: str, endpoint: str, payload: Any = None) -> httpx.Response:
        url = urljoin(self.base_url, endpoint.lstrip("/"))
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers=_github_headers(self._token),
                    json=payload,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ProviderError(
                    f"GitHub API error: {e.response.text}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.RequestError as e:
                raise ProviderError(f"Failed to connect to GitHub: {str(e)}") from e
        return response

    async def create_security_advisory(
        self,
        owner: str,
        repo: str,
        severity: str,
        summary: str,
        description: str,
        vulnerabilities: List[AdvisoryVulnerability],
    ) -> str:
        """
        Open a repository security advisory.

        Returns:
            The GHSA identifier of the new advisory
        """
        payload = {
            "summary": summary,
            "description": description,
            "severity": severity,
            "vulnerabilities": [v.to_api() for v in vulnerabilities],
        }
        response = await self._request("POST", f"repos/{owner}/{repo}/security-advisories", payload)
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"GitHub API returned invalid JSON for the new security advisory: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError("GitHub API returned an unexpected security advisory payload")

        ghsa_id = data.get("ghsa_id")
        if not ghsa_id or not isinstance(ghsa_id, str):
            raise ProviderError("GitHub API returned no ghsa_id for the new security advisory")
        return ghsa_id

    async def close_security_advisory(self, owner: str, repo: str, ghsa_id: str) -> None:
        """Close a previously opened security advisory."""
        await self._request(
            "PATCH",
            f"repos/{owner}/{repo}/security-advisories/{ghsa_id}",
            {"state": "closed"},
        )

    async def do_request(self, method: str, endpoint: str, body: Optional[str] = None) -> ProviderResponse:
        """Issue an arbitrary API request with a JSON body given as text."""
        payload = None
        if body:
            try:
                payload = json.loads(body)
            except ValueError as e:
                raise ProviderError(f"request body is not valid JSON: {e}") from e

        response = await self._request(method, endpoint, payload)
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text
        return ProviderResponse(status_code=response.status_code, body=data)
