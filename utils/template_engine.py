"""Prompt loading using string.Template for safe rendering."""

import os
from string import Template


def get_prompts_dir():
    """Return the absolute path to the prompts directory."""
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), "agents", "prompts")


def load_prompt(name):
    """Load a prompt file and return its contents as a string."""
    prompts_dir = get_prompts_dir()
    path = os.path.join(prompts_dir, f"{name}.txt")
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(prompts_dir) + os.sep):
        raise ValueError(f"Prompt path escapes prompts directory: {name}")
    with open(resolved, "r", encoding="utf-8") as f:
        return f.read()


def render_prompt(name, variables):
    """Load and render a prompt with the given variables.

    Uses string.Template so the JSON braces in prompts need no escaping;
    unknown placeholders are left as-is rather than raising errors.
    """
    return Template(load_prompt(name)).safe_substitute(variables)
