"""Pipeline state models shared across all stages."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

_LANGUAGES = {
    ".ts": "typescript", ".tsx": "typescript", ".js": "javascript",
    ".jsx": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".json": "json", ".css": "css", ".scss": "scss", ".html": "html",
    ".md": "markdown", ".yml": "yaml", ".yaml": "yaml", ".py": "python",
    ".svg": "svg", ".txt": "text",
}


def guess_language(path):
    """Guess language from file extension."""
    _, ext = os.path.splitext(path)
    return _LANGUAGES.get(ext.lower(), "text")


@dataclass(frozen=True)
class FileSpec:
    path: str           # relative path e.g. "app/page.tsx"
    purpose: str


@dataclass(frozen=True)
class Stack:
    framework: str      # "Next.js 14"
    language: str       # "TypeScript"
    styling: str        # "Tailwind CSS"


@dataclass(frozen=True)
class Manifest:
    project_name: str               # kebab-case, also the repository name
    stack: Stack
    file_specs: tuple[FileSpec, ...]
    features: tuple[str, ...] = ()
    prd: str = ""

    @property
    def planned_paths(self) -> list[str]:
        return [spec.path for spec in self.file_specs]


@dataclass(frozen=True)
class OutputFile:
    path: str
    content: str
    language: str = "text"


@dataclass
class ExtractionResult:
    files: list[OutputFile]
    strategy: str               # which extraction strategy produced the files
    truncated: bool = False     # True when trailing incomplete entries were dropped


@dataclass
class RetryState:
    max_attempts: int
    attempt: int = 0
    last_error: Exception | None = None

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts


class Stage(str, Enum):
    IDLE = "idle"
    GENERATING_PRD = "generating_prd"
    GENERATING_CODE = "generating_code"
    CREATING_REPO = "creating_repo"
    DEPLOYING = "deploying"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    stage: Stage
    message: str
    progress: int                   # 0..100
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not 0 <= self.progress <= 100:
            raise ValueError(f"progress must be within 0..100, got {self.progress}")

    def to_dict(self) -> dict:
        data = {
            "status": self.stage.value,
            "message": self.message,
            "progress": self.progress,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class GenerationResult:
    files: list[OutputFile]
    attempts: int
    strategy: str
    truncated: bool = False
    applied_fixes: list[str] = field(default_factory=list)

    @property
    def lines_of_code(self) -> int:
        return sum(len(f.content.split("\n")) for f in self.files)


@dataclass
class RepoResult:
    repo_url: str
    repo_name: str
    owner: str
    default_branch: str = "main"


@dataclass
class DeployResult:
    deploy_url: str | None
    project_id: str | None
    deployment_id: str | None
    status: str                     # ready|error|canceled|timeout
    error: str | None = None
    deploy_time: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ready"


@dataclass
class ProjectResult:
    manifest: Manifest
    files: list[OutputFile]
    repo: RepoResult
    deployment: DeployResult | None = None
    total_duration: int = 0
    generation_attempts: int = 1
    applied_fixes: list[str] = field(default_factory=list)
    output_dir: str | None = None

    def to_dict(self) -> dict:
        data = {
            "project_name": self.manifest.project_name,
            "prd": self.manifest.prd,
            "stack": {
                "framework": self.manifest.stack.framework,
                "language": self.manifest.stack.language,
                "styling": self.manifest.stack.styling,
            },
            "files": [f.path for f in self.files],
            "repo_url": self.repo.repo_url,
            "total_duration": self.total_duration,
            "generation_attempts": self.generation_attempts,
            "applied_fixes": list(self.applied_fixes),
            "output_dir": self.output_dir,
            "deploy_url": None,
            "deploy_status": None,
        }
        if self.deployment:
            data["deploy_url"] = self.deployment.deploy_url
            data["deploy_status"] = self.deployment.status
            if self.deployment.error:
                data["deploy_error"] = self.deployment.error
        return data
