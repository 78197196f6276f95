"""Declarative rule sets for generated output, planned manifests and auto-fixes."""

import re
from dataclasses import dataclass, field

from config.defaults import DEFAULTS

# Files every generated Next.js project must contain.
REQUIRED_FILES = (
    "package.json",
    "tsconfig.json",
    "app/page.tsx",
    "app/layout.tsx",
    "app/api/ping/route.ts",
    "README.md",
    ".gitignore",
)

# Files the planner must list in its manifest.
REQUIRED_PLANNED_FILES = (
    "package.json",
    "tsconfig.json",
    "app/page.tsx",
    "app/layout.tsx",
    "README.md",
    ".gitignore",
)

# Markers of unfinished generated code. Matched case-insensitively as substrings.
PLACEHOLDER_PATTERNS = (
    "// TODO",
    "// FIXME",
    "// Add logic here",
    "// Implement",
    "/* TODO",
    'throw new Error("Not implemented")',
    'console.log("TODO")',
)

PACKAGE_FILE = "package.json"
REQUIRED_SCRIPTS = ("dev", "build", "start", "lint")

# section name -> dependency keys that must be present in it
REQUIRED_DEPENDENCIES = {
    "dependencies": ("next", "react", "react-dom"),
    "devDependencies": ("typescript",),
}

PROJECT_NAME_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

# Export-completeness fix for the framework config entry point.
CONFIG_FILE = "next.config.js"
CONFIG_EXPORT_RE = re.compile(r"^[ \t]*(?:module\.exports\s*=|export\s+default\b)", re.MULTILINE)
CONFIG_EXPORT_STATEMENT = "module.exports = nextConfig;"

# Utility libraries the model tends to import without declaring.
# name -> pinned version inserted into package.json
KNOWN_LIBRARIES = {
    "clsx": "^2.1.1",
    "tailwind-merge": "^2.5.2",
    "class-variance-authority": "^0.7.0",
    "lucide-react": "^0.441.0",
    "framer-motion": "^11.5.4",
    "date-fns": "^3.6.0",
    "zod": "^3.23.8",
    "uuid": "^10.0.0",
    "axios": "^1.7.7",
    "swr": "^2.2.5",
}

SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs")


@dataclass(frozen=True)
class OutputRules:
    """What a generated file collection must satisfy."""

    required_files: tuple = REQUIRED_FILES
    forbidden_patterns: tuple = PLACEHOLDER_PATTERNS
    package_file: str = PACKAGE_FILE
    required_scripts: tuple = REQUIRED_SCRIPTS
    required_dependencies: dict = field(default_factory=lambda: dict(REQUIRED_DEPENDENCIES))


@dataclass(frozen=True)
class ManifestRules:
    """What a planned manifest must satisfy."""

    min_files: int = DEFAULTS["min_files"]
    max_files: int = DEFAULTS["max_files"]
    required_files: tuple = REQUIRED_PLANNED_FILES
    min_prd_length: int = 50


@dataclass(frozen=True)
class FixRules:
    """Inputs for the mechanical post-validation fixes."""

    config_file: str = CONFIG_FILE
    export_pattern: re.Pattern = CONFIG_EXPORT_RE
    export_statement: str = CONFIG_EXPORT_STATEMENT
    package_file: str = PACKAGE_FILE
    dependency_section: str = "dependencies"
    known_libraries: dict = field(default_factory=lambda: dict(KNOWN_LIBRARIES))
    source_extensions: tuple = SOURCE_EXTENSIONS
