"""Repository-publish collaborator: creates a GitHub repository and uploads files."""

import base64
import logging
from typing import Optional, Sequence

import requests

from config.defaults import DEFAULTS
from core.errors import TransportError, ValidationError
from core.state import OutputFile, RepoResult
from integrations.http import build_session

logger = logging.getLogger(__name__)


class GitHubPublisher:
    """Publishes an OutputCollection through the GitHub REST API.

    Re-publishing under an existing name is treated as success: the existing
    repository is reused and files are updated in place.
    """

    api_url = "https://api.github.com"

    def __init__(self, token, owner="", session=None, timeout=None):
        if not token:
            raise ValidationError("GitHub token is required", "github_token")
        self.owner = owner
        self.timeout = timeout or DEFAULTS["http_timeout"]
        self.session = session or build_session(
            token, headers={"Accept": "application/vnd.github+json"}
        )

    def _request(self, method, path, expected=(200, 201), **kwargs):
        url = f"{self.api_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}", "github") from e
        if resp.status_code not in expected:
            raise TransportError(
                f"{method} {path} returned {resp.text[:300]}", "github", status=resp.status_code
            )
        return resp

    def _authenticated_login(self):
        return self._request("GET", "/user").json().get("login")

    def _create_repository(self, owner, name, description):
        resp = self._request(
            "POST",
            "/user/repos",
            expected=(201, 422),
            json={
                "name": name,
                "description": description,
                "private": False,
                "auto_init": False,
                "has_issues": True,
                "has_projects": True,
                "has_wiki": False,
            },
        )
        if resp.status_code == 201:
            logger.info("Created GitHub repo %s/%s", owner, name)
            return resp.json()
        if "already exists" not in resp.text:
            raise TransportError(
                f"Repository creation rejected: {resp.text[:300]}", "github", status=422
            )
        logger.warning("Repository %s/%s already exists, reusing it", owner, name)
        return self._request("GET", f"/repos/{owner}/{name}").json()

    def _existing_sha(self, owner, name, path):
        resp = self._request("GET", f"/repos/{owner}/{name}/contents/{path}", expected=(200, 404))
        if resp.status_code == 404:
            return None
        data = resp.json()
        return data.get("sha") if isinstance(data, dict) else None

    def _upload(self, owner, name, output_file):
        path = requests.utils.quote(output_file.path, safe="/")
        content_b64 = base64.b64encode(output_file.content.encode("utf-8")).decode("ascii")
        payload = {"message": f"Add {output_file.path}", "content": content_b64}
        sha = self._existing_sha(owner, name, path)
        if sha:
            payload["sha"] = sha
            payload["message"] = f"Update {output_file.path}"
        self._request("PUT", f"/repos/{owner}/{name}/contents/{path}", json=payload)
        logger.debug("Uploaded %s", output_file.path)

    def publish(self, project_name: str, files: Sequence[OutputFile],
                description: Optional[str] = None) -> RepoResult:
        """Create (or reuse) the repository and upload every file. Returns RepoResult."""
        if not project_name or not project_name.strip():
            raise ValidationError("Project name is required", "project_name", project_name)
        if not files:
            raise ValidationError("Files array cannot be empty", "files", files)

        logger.info("Publishing %d files to GitHub as %s", len(files), project_name)
        owner = self.owner or self._authenticated_login()
        repo = self._create_repository(owner, project_name, description or f"Project: {project_name}")
        owner = (repo.get("owner") or {}).get("login") or owner

        for output_file in files:
            self._upload(owner, project_name, output_file)

        result = RepoResult(
            repo_url=repo.get("html_url") or f"https://github.com/{owner}/{project_name}",
            repo_name=project_name,
            owner=owner,
            default_branch=repo.get("default_branch") or DEFAULTS["default_branch"],
        )
        logger.info("Published %s", result.repo_url)
        return result
