"""Deployment collaborator: links a GitHub repository to Vercel and waits for the build."""

import logging
import re
import time
from typing import Optional

import requests

from config.defaults import DEFAULTS
from core.errors import TransportError, ValidationError
from core.state import DeployResult
from integrations.http import build_session

logger = logging.getLogger(__name__)

_GITHUB_URL_RE = re.compile(r"github\.com[/:]([^/]+)/([^/]+?)(?:\.git)?/?$")

_READY = {"READY"}
_FAILED = {"ERROR", "CANCELED"}


def parse_github_url(repo_url):
    """Return (owner, repo) from a GitHub URL."""
    match = _GITHUB_URL_RE.search(repo_url or "")
    if not match:
        raise ValidationError("Invalid GitHub URL format", "repo_url", repo_url)
    return match.group(1), match.group(2)


def deploy_framework(framework):
    """Map a planned framework name to Vercel's framework preset."""
    return "nextjs" if "next" in (framework or "").lower() else None


class VercelDeployer:
    """Deploys a GitHub repository on Vercel and polls until a terminal state.

    Running out of poll time is not an exception: the result comes back
    with status "timeout" so the caller can report partial success.
    """

    api_url = "https://api.vercel.com"

    def __init__(self, token, team_id="", session=None, timeout=None,
                 poll_interval=None, max_wait=None, sleep=time.sleep, clock=time.monotonic):
        if not token:
            raise ValidationError("Vercel token is required", "vercel_token")
        self.team_id = team_id
        self.timeout = timeout or DEFAULTS["http_timeout"]
        self.poll_interval = DEFAULTS["deploy_poll_interval"] if poll_interval is None else poll_interval
        self.max_wait = DEFAULTS["deploy_max_wait"] if max_wait is None else max_wait
        self._sleep = sleep
        self._clock = clock
        self.session = session or build_session(token)

    def _request(self, method, path, expected=(200, 201), **kwargs):
        url = f"{self.api_url}{path}"
        if self.team_id:
            kwargs.setdefault("params", {})["teamId"] = self.team_id
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}", "vercel") from e
        if resp.status_code not in expected:
            raise TransportError(
                f"{method} {path} returned {resp.text[:300]}", "vercel", status=resp.status_code
            )
        return resp

    def _get_or_create_project(self, project_name, owner, repo, framework):
        resp = self._request("GET", f"/v9/projects/{project_name}", expected=(200, 404))
        if resp.status_code == 200:
            project = resp.json()
            logger.info("Using existing Vercel project %s", project.get("id"))
            return project

        body = {
            "name": project_name,
            "gitRepository": {"type": "github", "repo": f"{owner}/{repo}"},
        }
        preset = deploy_framework(framework)
        if preset == "nextjs":
            body.update({
                "framework": "nextjs",
                "buildCommand": "npm run build",
                "devCommand": "npm run dev",
                "installCommand": "npm install",
                "outputDirectory": ".next",
            })
        project = self._request("POST", "/v10/projects", json=body).json()
        logger.info("Created Vercel project %s", project.get("id"))
        return project

    def _create_deployment(self, project_name, project_id, owner, repo, ref):
        body = {
            "name": project_name,
            "project": project_id,
            "target": "production",
            "gitSource": {"type": "github", "org": owner, "repo": repo, "ref": ref},
        }
        return self._request("POST", "/v13/deployments", json=body).json()

    def wait_for_deployment(self, deployment_id):
        """Poll until READY/ERROR/CANCELED; returns (state, deployment) or ("TIMEOUT", last)."""
        started = self._clock()
        last = {}
        while self._clock() - started < self.max_wait:
            try:
                last = self._request("GET", f"/v13/deployments/{deployment_id}").json()
            except TransportError as e:
                # freshly created deployments can 404 for a short while
                logger.warning("Deployment status check failed: %s", e)
            else:
                state = (last.get("readyState") or last.get("state") or "").upper()
                logger.info("Deployment %s state: %s", deployment_id, state or "unknown")
                if state in _READY or state in _FAILED:
                    return state, last
            self._sleep(self.poll_interval)
        return "TIMEOUT", last

    def deploy(self, repo_url: str, project_name: str, framework: str = "nextjs",
               ref: Optional[str] = None) -> DeployResult:
        """Deploy repo_url as project_name. Returns DeployResult.

        Raises:
            ValidationError: repo_url is not a GitHub URL.
            TransportError: the Vercel API could not be reached or refused a call.
        """
        owner, repo = parse_github_url(repo_url)
        ref = ref or DEFAULTS["default_branch"]
        logger.info("Deploying %s/%s to Vercel as %s", owner, repo, project_name)
        started = self._clock()

        project = self._get_or_create_project(project_name, owner, repo, framework)
        deployment = self._create_deployment(project_name, project.get("id"), owner, repo, ref)
        deployment_id = deployment.get("id") or deployment.get("uid")
        state, final = self.wait_for_deployment(deployment_id)

        url = final.get("url") or deployment.get("url") or f"{project_name}.vercel.app"
        if not url.startswith("http"):
            url = f"https://{url}"
        status = {"READY": "ready", "ERROR": "error", "CANCELED": "canceled"}.get(state, "timeout")
        error = None
        if status == "timeout":
            error = f"Deployment did not finish within {self.max_wait}s"
        elif status != "ready":
            error = f"Deployment failed with state: {state}"

        result = DeployResult(
            deploy_url=url if status == "ready" else None,
            project_id=project.get("id"),
            deployment_id=deployment_id,
            status=status,
            error=error,
            deploy_time=round(self._clock() - started),
        )
        if result.ok:
            logger.info("Deployment ready at %s", result.deploy_url)
        else:
            logger.warning("Deployment %s: %s", status, error)
        return result
