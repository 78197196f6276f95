"""Explicit configuration objects. Environment variables are read only in Settings.from_env()."""

import os
from dataclasses import dataclass, field

from config.defaults import DEFAULTS
from config.rules import FixRules, ManifestRules, OutputRules


@dataclass(frozen=True)
class PlanningConfig:
    model: str = DEFAULTS["model"]
    max_tokens: int = DEFAULTS["planning_max_tokens"]
    temperature: float = DEFAULTS["planning_temperature"]
    timeout: float = DEFAULTS["planning_timeout"]
    max_attempts: int = DEFAULTS["planning_max_attempts"]
    retry_delay: float = DEFAULTS["retry_delay"]
    min_brief_length: int = DEFAULTS["min_brief_length"]
    rules: ManifestRules = field(default_factory=ManifestRules)


@dataclass(frozen=True)
class GenerationConfig:
    model: str = DEFAULTS["model"]
    max_tokens: int = DEFAULTS["generation_max_tokens"]
    temperature: float = DEFAULTS["generation_temperature"]
    timeout: float = DEFAULTS["generation_timeout"]
    max_attempts: int = DEFAULTS["generation_max_attempts"]
    retry_delay: float = DEFAULTS["retry_delay"]
    rules: OutputRules = field(default_factory=OutputRules)
    fix_rules: FixRules = field(default_factory=FixRules)


@dataclass(frozen=True)
class Settings:
    """Everything a pipeline run needs, fixed at construction time."""

    anthropic_api_key: str = ""
    anthropic_base_url: str = ""
    github_token: str = ""
    github_owner: str = ""
    vercel_token: str = ""
    vercel_team_id: str = ""
    workspace_dir: str = ""
    enable_deploy: bool = False
    http_timeout: float = DEFAULTS["http_timeout"]
    planning: PlanningConfig = field(default_factory=PlanningConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """Build settings from environment variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        model = env.get("ANTHROPIC_MODEL") or DEFAULTS["model"]
        vercel_token = env.get("VERCEL_TOKEN", "")
        values = {
            "anthropic_api_key": env.get("ANTHROPIC_API_KEY", ""),
            "anthropic_base_url": env.get("ANTHROPIC_BASE_URL", ""),
            "github_token": env.get("GITHUB_TOKEN", ""),
            "github_owner": env.get("GITHUB_USERNAME", ""),
            "vercel_token": vercel_token,
            "vercel_team_id": env.get("VERCEL_TEAM_ID", ""),
            "workspace_dir": env.get("WORKSPACE_DIR", ""),
            "enable_deploy": bool(vercel_token),
            "planning": PlanningConfig(model=model),
            "generation": GenerationConfig(model=model),
        }
        values.update(overrides)
        return cls(**values)
