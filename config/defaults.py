"""Default pipeline settings."""

DEFAULTS = {
    "model": "claude-sonnet-4-5-20250929",
    "min_brief_length": 10,
    # Planning (one call, small JSON payload)
    "planning_max_tokens": 8192,
    "planning_temperature": 0.7,
    "planning_timeout": 60,
    "planning_max_attempts": 1,
    "min_files": 5,
    "max_files": 15,
    # Generation (one call per attempt, large JSON payload)
    "generation_max_tokens": 16000,
    "generation_temperature": 0.1,   # low temperature keeps the JSON shape stable
    "generation_timeout": 120,
    "generation_max_attempts": 3,    # first attempt + 2 retries
    "retry_delay": 2.0,              # flat backoff, seconds
    # Diagnostics
    "preview_length": 500,
    # Collaborators
    "http_timeout": 30,
    "deploy_poll_interval": 10,
    "deploy_max_wait": 300,
    "default_branch": "main",
}
