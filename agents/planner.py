"""Planner agent: turns a brief into a PRD and a validated Manifest."""

import logging
import re
import time

from config.settings import PlanningConfig
from core.errors import ExtractionError, ValidationError
from core.extractor import PayloadSchema, extract_payload
from core.retry import run_with_retries
from core.state import Manifest
from core.validator import validate_brief, validate_manifest
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)


def _accepts_plan(obj):
    return isinstance(obj, dict) and isinstance(obj.get("plan"), dict)


PLAN_SCHEMA = PayloadSchema(
    name="plan",
    opening=re.compile(r"""\{\s*["'](?:prd|plan)["']\s*:"""),
    accepts=_accepts_plan,
)


class PlannerAgent:
    """Produces the Manifest every later stage works from.

    One completion call per attempt. The payload is small, so truncation
    repair is not attempted; normalization and the bracket/fence strategies
    are the same as for generation.
    """

    name = "planner"

    def __init__(self, client, config=None, sleep=time.sleep):
        self.client = client
        self.config = config or PlanningConfig()
        self._sleep = sleep

    def build_prompts(self, brief):
        rules = self.config.rules
        system_prompt = render_prompt("planner", {
            "min_files": rules.min_files,
            "max_files": rules.max_files,
            "required_files": ", ".join(rules.required_files),
        })
        user_prompt = (
            f"Brief: {brief}\n\n"
            "Create the PRD and the development plan. Respond with JSON only."
        )
        return system_prompt, user_prompt

    def run(self, brief: str) -> Manifest:
        """Return a Manifest for brief.

        Raises:
            ValidationError: brief rejected, or the plan failed validation.
            ExtractionError: no plan could be recovered from the response.
            TransportError: the completion backend failed.
        """
        brief = validate_brief(brief, self.config.min_brief_length)
        logger.info("[Planner] Brief: %s", brief[:100])
        system_prompt, user_prompt = self.build_prompts(brief)

        def attempt(retry):
            raw = self.client.complete(
                system_prompt,
                user_prompt,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                timeout=self.config.timeout,
                model=self.config.model,
            )
            payload, strategy = extract_payload(raw, PLAN_SCHEMA)
            logger.debug("[Planner] Plan extracted via %s (attempt %d)", strategy, retry.attempt)
            return validate_manifest(payload, self.config.rules)

        manifest, _ = run_with_retries(
            attempt,
            max_attempts=self.config.max_attempts,
            retry_on=(ExtractionError, ValidationError),
            delay=self.config.retry_delay,
            sleep=self._sleep,
            label="planner",
        )
        logger.info("[Planner] Project %s with %d planned files",
                    manifest.project_name, len(manifest.file_specs))
        return manifest
