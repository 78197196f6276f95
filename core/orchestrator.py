"""Main pipeline orchestrator: brief -> plan -> files -> repository -> deployment."""

import logging
import queue
import threading
import time
from typing import Callable, Optional

from agents.generator import GeneratorAgent
from agents.planner import PlannerAgent
from core.errors import PipelineError
from core.state import DeployResult, ProgressEvent, ProjectResult, Stage
from integrations.github import GitHubPublisher
from integrations.vercel import VercelDeployer
from utils.llm import CompletionClient
from utils.workspace import get_output_dir, write_files

logger = logging.getLogger(__name__)

_DONE = object()


class Orchestrator:
    """Runs the full pipeline: plan -> generate -> publish -> deploy.

    Each run owns its own retry state and results; the orchestrator itself
    only holds configuration and collaborators, so one instance can serve
    concurrent runs. Collaborators not passed in are built from settings
    the first time a run needs them.
    """

    def __init__(self, settings, client=None, planner=None, generator=None,
                 publisher=None, deployer=None):
        self.settings = settings
        self._client = client
        self.planner = planner
        self.generator = generator
        self.publisher = publisher
        self.deployer = deployer

    def _completion_client(self):
        if self._client is None:
            self._client = CompletionClient.from_settings(self.settings)
        return self._client

    def _planner(self):
        if self.planner is None:
            self.planner = PlannerAgent(self._completion_client(), self.settings.planning)
        return self.planner

    def _generator(self):
        if self.generator is None:
            self.generator = GeneratorAgent(self._completion_client(), self.settings.generation)
        return self.generator

    def _publisher(self):
        if self.publisher is None:
            self.publisher = GitHubPublisher(
                self.settings.github_token,
                owner=self.settings.github_owner,
                timeout=self.settings.http_timeout,
            )
        return self.publisher

    def _deployer(self):
        if self.deployer is None:
            self.deployer = VercelDeployer(
                self.settings.vercel_token,
                team_id=self.settings.vercel_team_id,
                timeout=self.settings.http_timeout,
            )
        return self.deployer

    def plan(self, brief):
        """Planning only. Returns the Manifest."""
        return self._planner().run(brief)

    def _deploy(self, repo, manifest, emit):
        """Deployment failures never fail the run; they are recorded on the result."""
        emit(Stage.DEPLOYING, "Deploying to Vercel...", 80)
        try:
            deployment = self._deployer().deploy(
                repo.repo_url,
                manifest.project_name,
                framework=manifest.stack.framework,
                ref=repo.default_branch,
            )
        except Exception as e:
            logger.warning("Deployment failed: %s", e)
            deployment = DeployResult(
                deploy_url=None, project_id=None, deployment_id=None,
                status="error", error=str(e),
            )

        if deployment.ok:
            emit(Stage.DEPLOYING, f"Deployed successfully: {deployment.deploy_url}", 90)
        else:
            emit(Stage.DEPLOYING,
                 f"Deployment did not complete, repository is ready at {repo.repo_url}",
                 90, error=deployment.error)
        return deployment

    def create_project(self, brief: str,
                       on_progress: Optional[Callable[[ProgressEvent], None]] = None,
                       output_dir: Optional[str] = None) -> ProjectResult:
        """Run every stage for brief and return a ProjectResult.

        on_progress, if given, receives each ProgressEvent in order. When
        output_dir (or settings.workspace_dir) is set, the generated files
        are also written to a fresh directory below it. A missing Anthropic
        or GitHub credential fails the run before the first model call.

        Raises:
            PipelineError: carrying the stage reached and the original cause.
        """
        started = time.monotonic()
        stage = Stage.IDLE

        def emit(event_stage, message, progress, error=None):
            event = ProgressEvent(event_stage, message, progress, error=error)
            logger.info("[%s] %s (%d%%)", event_stage.value, message, progress)
            if on_progress:
                on_progress(event)

        try:
            # Credentials for required stages are checked before any model call.
            stage = Stage.GENERATING_PRD
            self._planner()
            self._generator()
            stage = Stage.CREATING_REPO
            self._publisher()

            stage = Stage.GENERATING_PRD
            emit(stage, "Analyzing your brief and generating PRD...", 10)
            manifest = self._planner().run(brief)
            emit(stage, f"PRD generated: {len(manifest.file_specs)} files planned", 20)

            stage = Stage.GENERATING_CODE
            emit(stage, "Generating project files...", 30)
            generation = self._generator().run(manifest)
            emit(stage, f"Generated {len(generation.files)} files "
                        f"({generation.lines_of_code} lines of code)", 50)

            written_to = None
            output_root = output_dir or self.settings.workspace_dir
            if output_root:
                written_to = get_output_dir(output_root, manifest.project_name)
                write_files(written_to, generation.files)

            stage = Stage.CREATING_REPO
            emit(stage, "Creating GitHub repository...", 60)
            repo = self._publisher().publish(
                manifest.project_name,
                generation.files,
                description=manifest.prd[:200] or None,
            )
            emit(stage, f"Repository created: {repo.repo_url}", 70)

            deployment = None
            if self.settings.enable_deploy:
                stage = Stage.DEPLOYING
                deployment = self._deploy(repo, manifest, emit)
        except Exception as e:
            logger.error("Pipeline failed during %s: %s", stage.value, e)
            emit(Stage.ERROR, f"Failed during {stage.value}", 0, error=str(e))
            raise PipelineError(stage, e) from e

        result = ProjectResult(
            manifest=manifest,
            files=generation.files,
            repo=repo,
            deployment=deployment,
            total_duration=round(time.monotonic() - started),
            generation_attempts=generation.attempts,
            applied_fixes=list(generation.applied_fixes),
            output_dir=written_to,
        )
        emit(Stage.COMPLETED, "Project created successfully!", 100)
        return result

    def stream_project(self, brief, output_dir=None):
        """Yield each ProgressEvent as it happens, then the ProjectResult.

        The run happens on a worker thread. A failed run re-raises its
        PipelineError after the error event has been yielded.
        """
        events = queue.Queue()
        outcome = {}

        def worker():
            try:
                outcome["result"] = self.create_project(
                    brief, on_progress=events.put, output_dir=output_dir
                )
            except PipelineError as e:
                outcome["error"] = e
            finally:
                events.put(_DONE)

        thread = threading.Thread(target=worker, name="pipeline", daemon=True)
        thread.start()
        while True:
            item = events.get()
            if item is _DONE:
                break
            yield item
        thread.join()

        if "error" in outcome:
            raise outcome["error"]
        yield outcome["result"]
