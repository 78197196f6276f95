"""Generator agent: produces the project's files from a Manifest.

One run is a small state machine:

    IDLE -> REQUESTING -> EXTRACTING -> VALIDATING -> FIXING -> SUCCEEDED
                 ^                           |
                 +---- retry (flat delay) ---+          any -> FAILED

Extraction and validation failures consume one attempt. A transport
failure from the completion backend is fatal straight away.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional

from config.settings import GenerationConfig
from core.errors import ExtractionError, ExtractionFailure, TransportError, ValidationError
from core.extractor import extract_files
from core.fixer import apply_fixes
from core.retry import run_with_retries
from core.state import GenerationResult, Manifest
from core.validator import validate_files
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)


class GenerationState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    FIXING = "fixing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def format_plan(manifest):
    """Plan description sent to the model. Built from the manifest only."""
    stack = manifest.stack
    lines = [
        f"Project name: {manifest.project_name}",
        f"Stack: {stack.framework}, {stack.language}, {stack.styling}",
        "",
        "Files to generate:",
    ]
    lines.extend(f"- {spec.path}: {spec.purpose}" for spec in manifest.file_specs)
    lines.append("")
    features = ", ".join(manifest.features) if manifest.features else "Standard functionality"
    lines.append(f"Features: {features}")
    return "\n".join(lines)


class GeneratorAgent:
    """Requests, extracts, validates and fixes the generated file collection."""

    name = "generator"

    def __init__(self, client, config=None, sleep=time.sleep):
        self.client = client
        self.config = config or GenerationConfig()
        self._sleep = sleep

    def build_prompts(self, manifest):
        system_prompt = render_prompt("generator", {
            "required_files": ", ".join(self.config.rules.required_files),
        })
        user_prompt = (
            f"Development plan:\n{format_plan(manifest)}\n\n"
            "Your response MUST start with { and end with } - nothing else.\n"
            'Only output valid JSON of the form {"files":[{"path":"...","content":"..."}]}\n\n'
            "Generate ALL project files now."
        )
        return system_prompt, user_prompt

    def run(self, manifest: Manifest,
            on_state: Optional[Callable[[GenerationState], None]] = None) -> GenerationResult:
        """Generate files for manifest and return a GenerationResult.

        on_state, if given, is called with every GenerationState entered.

        Raises:
            ValidationError / ExtractionError: the last error once
                config.max_attempts attempts have failed.
            TransportError: the completion backend failed (not retried).
        """
        def enter(state):
            logger.debug("[Generator] -> %s", state.value)
            if on_state:
                on_state(state)

        logger.info("[Generator] Project %s, %d planned files",
                    manifest.project_name, len(manifest.file_specs))
        enter(GenerationState.IDLE)
        system_prompt, user_prompt = self.build_prompts(manifest)
        config = self.config

        def attempt(retry):
            enter(GenerationState.REQUESTING)
            if retry.attempt > 1:
                logger.info("[Generator] Retry attempt %d of %d", retry.attempt, retry.max_attempts)
            raw = self.client.complete(
                system_prompt,
                user_prompt,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                timeout=config.timeout,
                model=config.model,
            )

            enter(GenerationState.EXTRACTING)
            extraction = extract_files(raw)
            if extraction.truncated and not retry.exhausted:
                raise ExtractionError(
                    ExtractionFailure.TRUNCATED_RECOVERABLE,
                    f"Response truncated after {len(extraction.files)} complete file(s)",
                    raw,
                )

            enter(GenerationState.VALIDATING)
            validate_files(extraction.files, manifest, config.rules)
            return extraction

        try:
            extraction, retry = run_with_retries(
                attempt,
                max_attempts=config.max_attempts,
                retry_on=(ExtractionError, ValidationError),
                delay=config.retry_delay,
                sleep=self._sleep,
                label="generator",
            )
        except (ExtractionError, ValidationError, TransportError):
            enter(GenerationState.FAILED)
            raise

        enter(GenerationState.FIXING)
        files, applied = apply_fixes(extraction.files, config.fix_rules)

        result = GenerationResult(
            files=files,
            attempts=retry.attempt,
            strategy=extraction.strategy,
            truncated=extraction.truncated,
            applied_fixes=applied,
        )
        enter(GenerationState.SUCCEEDED)
        logger.info("[Generator] %d files, %d lines of code, %d attempt(s)",
                    len(result.files), result.lines_of_code, result.attempts)
        return result
