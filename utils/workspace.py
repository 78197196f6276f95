"""Local workspace output: directory naming, dedup and contained file writes."""

import logging
import os
import re

logger = logging.getLogger(__name__)

MAX_DEDUP = 1000


def slugify(text):
    """Convert text to a filesystem-safe kebab-case slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-") or "project"


def _check_containment(base_dir, path):
    """Verify the resolved path stays within base_dir."""
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(base_dir) + os.sep):
        raise ValueError(f"Path escapes output directory: {path}")
    return resolved


def get_output_dir(base_dir, project_name):
    """Return a deduplicated directory under base_dir for project_name."""
    base = os.path.join(base_dir, slugify(project_name))
    _check_containment(base_dir, base)

    if not os.path.exists(base):
        return base

    for counter in range(2, MAX_DEDUP + 2):
        candidate = f"{base}-{counter}"
        if not os.path.exists(candidate):
            return candidate

    raise RuntimeError(f"Too many duplicate projects (>{MAX_DEDUP}) for: {project_name}")


def write_files(output_dir, files):
    """Write every OutputFile under output_dir. Returns the relative paths written."""
    os.makedirs(output_dir, exist_ok=True)
    written = []
    for f in files:
        resolved = _check_containment(output_dir, os.path.join(output_dir, f.path))
        os.makedirs(os.path.dirname(resolved), exist_ok=True)
        with open(resolved, "w", encoding="utf-8") as fh:
            fh.write(f.content)
        written.append(f.path)
    logger.info("Wrote %d files to %s", len(written), output_dir)
    return written
