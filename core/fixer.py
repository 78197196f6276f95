"""Mechanical post-validation fixes for defects the model reliably produces.

Fixes are best-effort: they never remove content and never raise. A file
that cannot be parsed is logged and left untouched.
"""

import json
import logging
import re
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from config.rules import FixRules
from core.state import OutputFile

logger = logging.getLogger(__name__)

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def _reference_patterns(library):
    """Import/require patterns for a library name, subpaths included."""
    name = re.escape(library)
    target = rf"""['"]{name}(?:/[^'"]*)?['"]"""
    return (
        re.compile(rf"""\bfrom\s+{target}"""),
        re.compile(rf"""^\s*import\s+{target}""", re.MULTILINE),
        re.compile(rf"""\brequire\(\s*{target}\s*\)"""),
        re.compile(rf"""\bimport\(\s*{target}\s*\)"""),
    )


def fix_config_export(content, rules=None):
    """Append the canonical export statement when no real export is present.

    Only a statement at the start of a line counts; exports inside line or
    block comments and substrings do not. Running it twice equals running
    it once.
    """
    rules = rules or FixRules()
    if rules.export_pattern.search(_BLOCK_COMMENT_RE.sub("", content)):
        return content
    separator = "" if not content or content.endswith("\n") else "\n"
    return f"{content}{separator}\n{rules.export_statement}\n"


def find_referenced_libraries(files, rules=None):
    """Known libraries referenced by source files, in first-seen order."""
    rules = rules or FixRules()
    patterns = {lib: _reference_patterns(lib) for lib in rules.known_libraries}
    found = []
    for f in files:
        if not f.path.endswith(rules.source_extensions):
            continue
        for lib, lib_patterns in patterns.items():
            if lib in found:
                continue
            if any(p.search(f.content) for p in lib_patterns):
                found.append(lib)
    return found


def fix_dependencies(files, rules=None):
    """Declare referenced-but-missing known libraries in the package file.

    Returns (files, added) where files is a new list and added names the
    libraries inserted.
    """
    rules = rules or FixRules()
    index = next((i for i, f in enumerate(files) if f.path == rules.package_file), None)
    if index is None:
        return list(files), []

    referenced = find_referenced_libraries(files, rules)
    if not referenced:
        return list(files), []

    package_file = files[index]
    try:
        data = json.loads(package_file.content)
    except json.JSONDecodeError as e:
        logger.warning("Skipping dependency fix: %s is not valid JSON (%s)", rules.package_file, e)
        return list(files), []
    if not isinstance(data, dict):
        logger.warning("Skipping dependency fix: %s is not a JSON object", rules.package_file)
        return list(files), []

    section = data.get(rules.dependency_section)
    if section is None:
        section = data[rules.dependency_section] = {}
    if not isinstance(section, dict):
        logger.warning("Skipping dependency fix: %s.%s is not an object",
                       rules.package_file, rules.dependency_section)
        return list(files), []

    added = []
    for lib in referenced:
        if lib not in section:
            section[lib] = rules.known_libraries[lib]
            added.append(lib)
    if not added:
        return list(files), []

    fixed = list(files)
    fixed[index] = replace(package_file, content=json.dumps(data, indent=2) + "\n")
    return fixed, added


def apply_fixes(files: Sequence[OutputFile],
                rules: Optional[FixRules] = None) -> Tuple[List[OutputFile], List[str]]:
    """Run every fix in a fixed order. Returns (files, applied) and never raises."""
    rules = rules or FixRules()
    fixed = list(files)
    applied = []

    for i, f in enumerate(fixed):
        if f.path != rules.config_file:
            continue
        try:
            content = fix_config_export(f.content, rules)
        except Exception:
            logger.exception("Export fix failed for %s", f.path)
            continue
        if content != f.content:
            fixed[i] = replace(f, content=content)
            applied.append(f"{f.path}: appended `{rules.export_statement}`")

    try:
        fixed, added = fix_dependencies(fixed, rules)
    except Exception:
        logger.exception("Dependency fix failed")
        added = []
    for lib in added:
        applied.append(
            f"{rules.package_file}: added {lib}@{rules.known_libraries[lib]} "
            f"to {rules.dependency_section}"
        )

    for line in applied:
        logger.info("Auto-fix: %s", line)
    return fixed, applied
