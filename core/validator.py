"""Fail-fast validation of briefs, planned manifests and generated file collections.

Every check raises ValidationError on the first violation; nothing here
retries or aggregates.
"""

import json
import logging
from typing import Any, Dict, Optional, Sequence

from config.rules import PROJECT_NAME_RE, ManifestRules, OutputRules
from core.errors import ValidationError
from core.state import FileSpec, Manifest, OutputFile, Stack

logger = logging.getLogger(__name__)


def validate_brief(brief, min_length=10):
    """Return the stripped brief or raise ValidationError."""
    if not isinstance(brief, str) or not brief.strip():
        raise ValidationError("Brief cannot be empty", "brief", brief)
    brief = brief.strip()
    if len(brief) < min_length:
        raise ValidationError(
            "Brief is too short. Please provide more details.", "brief", len(brief)
        )
    return brief


# ---------------------------------------------------------------------------
# Generated files
# ---------------------------------------------------------------------------

def validate_files(files: Sequence[OutputFile], manifest: Manifest,
                   rules: Optional[OutputRules] = None) -> None:
    """Check a generated OutputCollection against rules and the planned manifest."""
    rules = rules or OutputRules()

    if not isinstance(files, list) or not files:
        raise ValidationError("Files array cannot be empty", "files", files)

    for f in files:
        if not f.path:
            raise ValidationError("Each file must have a path", "files[].path", f)
        if not f.content:
            raise ValidationError(
                f"File {f.path} must have content", "files[].content", f.path
            )

    seen = set()
    for f in files:
        if f.path in seen:
            raise ValidationError(f"Duplicate file path: {f.path}", "files[].path", f.path)
        seen.add(f.path)

    for f in files:
        marker = find_forbidden_pattern(f.content, rules.forbidden_patterns)
        if marker:
            raise ValidationError(
                f"File {f.path} contains placeholder code ({marker})",
                "files[].content",
                f.path,
            )

    for required in rules.required_files:
        if required not in seen:
            raise ValidationError(f"Missing required file: {required}", "files", required)

    package_file = next((f for f in files if f.path == rules.package_file), None)
    if package_file is None:
        raise ValidationError(
            f"{rules.package_file} is required", "files", rules.package_file
        )
    validate_package_manifest(package_file.content, manifest.project_name, rules)

    logger.debug("Validated %d files for %s", len(files), manifest.project_name)


def find_forbidden_pattern(content, patterns):
    """Return the first placeholder marker found in content (case-insensitive), or None."""
    lowered = content.lower()
    for pattern in patterns:
        if pattern.lower() in lowered:
            return pattern
    return None


def validate_package_manifest(content, project_name, rules=None):
    """Check the dependency-declaration file: name, scripts and dependencies."""
    rules = rules or OutputRules()
    name = rules.package_file
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Manifest file invalid: {name} is not valid JSON ({e.msg})", name, content
        ) from e
    if not isinstance(data, dict):
        raise ValidationError(
            f"Manifest file invalid: {name} is not a JSON object", name, content
        )

    if data.get("name") != project_name:
        raise ValidationError(
            f"{name} name must match project name: {project_name}",
            f"{name}.name",
            data.get("name"),
        )

    scripts = data.get("scripts")
    for script in rules.required_scripts:
        if not isinstance(scripts, dict) or not scripts.get(script):
            raise ValidationError(
                f'{name} must have "{script}" script', f"{name}.scripts", script
            )

    for section, keys in rules.required_dependencies.items():
        declared = data.get(section)
        for key in keys:
            if not isinstance(declared, dict) or not declared.get(key):
                raise ValidationError(
                    f"{name} must have {key} in {section}", f"{name}.{section}", key
                )


# ---------------------------------------------------------------------------
# Planned manifest
# ---------------------------------------------------------------------------

def validate_manifest(payload: Dict[str, Any], rules: Optional[ManifestRules] = None) -> Manifest:
    """Check a planning payload ({"prd": ..., "plan": {...}}) and build a Manifest."""
    rules = rules or ManifestRules()

    prd = payload.get("prd")
    if not isinstance(prd, str) or not prd.strip():
        raise ValidationError("PRD must be a non-empty string", "prd", prd)
    if len(prd) < rules.min_prd_length:
        raise ValidationError("PRD is too short", "prd", len(prd))

    plan = payload.get("plan")
    if not isinstance(plan, dict):
        raise ValidationError("Plan must be an object", "plan", plan)

    project_name = plan.get("project_name")
    if not isinstance(project_name, str) or not project_name:
        raise ValidationError(
            "Project name must be a non-empty string", "plan.project_name", project_name
        )
    if not PROJECT_NAME_RE.match(project_name):
        raise ValidationError(
            "Project name must be in kebab-case format", "plan.project_name", project_name
        )

    stack = plan.get("stack")
    if not isinstance(stack, dict):
        raise ValidationError("Stack must be an object", "plan.stack", stack)
    for key in ("framework", "language", "styling"):
        value = stack.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(
                "Stack must include framework, language, and styling", f"plan.stack.{key}", value
            )

    entries = plan.get("files")
    if not isinstance(entries, list):
        raise ValidationError("Files must be an array", "plan.files", entries)
    if len(entries) < rules.min_files:
        raise ValidationError(
            f"Too few files. Minimum: {rules.min_files}", "plan.files", len(entries)
        )
    if len(entries) > rules.max_files:
        raise ValidationError(
            f"Too many files. Maximum: {rules.max_files}", "plan.files", len(entries)
        )

    specs = []
    seen = set()
    for entry in entries:
        path = entry.get("path") if isinstance(entry, dict) else None
        if not isinstance(path, str) or not path.strip():
            raise ValidationError("Each planned file must have a path", "plan.files[].path", entry)
        path = path.strip()
        if path.startswith("/") or ".." in path.split("/"):
            raise ValidationError(f"Planned path must be relative: {path}", "plan.files[].path", path)
        if path in seen:
            raise ValidationError(f"Duplicate planned file: {path}", "plan.files[].path", path)
        seen.add(path)
        purpose = entry.get("purpose")
        specs.append(FileSpec(path=path, purpose=purpose if isinstance(purpose, str) else ""))

    for required in rules.required_files:
        if required not in seen:
            raise ValidationError(f"Missing required file: {required}", "plan.files", required)

    features = plan.get("features") or []
    if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
        raise ValidationError("Features must be a list of strings", "plan.features", features)

    return Manifest(
        project_name=project_name,
        stack=Stack(
            framework=stack["framework"].strip(),
            language=stack["language"].strip(),
            styling=stack["styling"].strip(),
        ),
        file_specs=tuple(specs),
        features=tuple(features),
        prd=prd,
    )
