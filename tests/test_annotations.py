"""Public entry points carry parameter and return annotations."""

import inspect
import typing

import pytest

from agents.generator import GeneratorAgent
from agents.planner import PlannerAgent
from core.extractor import extract_files, extract_payload, normalize
from core.fixer import apply_fixes
from core.orchestrator import Orchestrator
from core.retry import run_with_retries
from core.state import DeployResult, ExtractionResult, GenerationResult, Manifest, ProjectResult, RepoResult
from core.validator import validate_files, validate_manifest
from integrations.github import GitHubPublisher
from integrations.vercel import VercelDeployer

ENTRY_POINTS = [
    normalize,
    extract_payload,
    extract_files,
    validate_files,
    validate_manifest,
    apply_fixes,
    run_with_retries,
    GeneratorAgent.run,
    PlannerAgent.run,
    Orchestrator.create_project,
    GitHubPublisher.publish,
    VercelDeployer.deploy,
]


@pytest.mark.parametrize("func", ENTRY_POINTS, ids=lambda f: f.__qualname__)
def test_entry_point_fully_annotated(func):
    hints = typing.get_type_hints(func)
    params = [p for p in inspect.signature(func).parameters if p != "self"]
    assert "return" in hints
    assert [p for p in params if p not in hints] == []


@pytest.mark.parametrize("func, expected", [
    (normalize, str),
    (extract_files, ExtractionResult),
    (validate_manifest, Manifest),
    (GeneratorAgent.run, GenerationResult),
    (PlannerAgent.run, Manifest),
    (Orchestrator.create_project, ProjectResult),
    (GitHubPublisher.publish, RepoResult),
    (VercelDeployer.deploy, DeployResult),
], ids=lambda v: getattr(v, "__qualname__", None))
def test_entry_point_return_types(func, expected):
    assert typing.get_type_hints(func)["return"] is expected
