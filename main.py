#!/usr/bin/env python3
"""brief2repo - turn a short product brief into a published Next.js project.

Usage:
    python main.py create --brief "a habit tracker with streaks"
    python main.py create --brief "..." --no-deploy --output ./out
    python main.py create --brief "..." --verbose
    python main.py plan --brief "a habit tracker with streaks"
"""

import argparse
import logging
import sys

from config.settings import Settings
from core.errors import ExtractionError, PipelineError, TransportError, ValidationError
from core.orchestrator import Orchestrator


def _print_event(event):
    line = f"[{event.progress:3d}%] {event.stage.value:16s} {event.message}"
    if event.error:
        line += f"\n       error: {event.error}"
    print(line)


def cmd_create(args, settings):
    """Run the whole pipeline and print a summary."""
    orchestrator = Orchestrator(settings)
    try:
        result = orchestrator.create_project(
            args.brief, on_progress=_print_event, output_dir=args.output
        )
    except PipelineError as e:
        print(f"\nFailed during {e.stage.value} ({e.kind}): {e.cause}", file=sys.stderr)
        return 1

    print(f"\nProject:  {result.manifest.project_name}")
    print(f"Repo:     {result.repo.repo_url}")
    if result.deployment:
        print(f"Deploy:   {result.deployment.deploy_url or result.deployment.status}")
    if result.output_dir:
        print(f"Output:   {result.output_dir}")
    print(f"Attempts: {result.generation_attempts}")
    print(f"Duration: {result.total_duration}s")
    if result.applied_fixes:
        print("Fixes:")
        for fix in result.applied_fixes:
            print(f"  {fix}")
    print(f"\nGenerated {len(result.files)} file(s):")
    for f in result.files:
        print(f"  {f.path}")
    return 0


def cmd_plan(args, settings):
    """Run the planner only and show the manifest."""
    orchestrator = Orchestrator(settings)
    try:
        manifest = orchestrator.plan(args.brief)
    except (ValidationError, ExtractionError, TransportError, RuntimeError) as e:
        print(f"Planning failed: {e}", file=sys.stderr)
        return 1

    stack = manifest.stack
    print(f"Project: {manifest.project_name}")
    print(f"Stack:   {stack.framework} / {stack.language} / {stack.styling}")
    print(f"\nPRD:\n  {manifest.prd}")
    print("\nFile manifest:")
    for spec in manifest.file_specs:
        print(f"  {spec.path:32s} {spec.purpose}")
    if manifest.features:
        print("\nFeatures:")
        for feature in manifest.features:
            print(f"  - {feature}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="brief2repo",
        description="Generate, publish and deploy a Next.js project from a brief",
    )
    subparsers = parser.add_subparsers(dest="command")

    create_parser = subparsers.add_parser("create", help="Run the full pipeline")
    create_parser.add_argument("--brief", required=True, help="Product brief")
    create_parser.add_argument("--no-deploy", action="store_true",
                               help="Publish the repository but skip the Vercel deployment")
    create_parser.add_argument("--output", help="Also write the generated files below this directory")
    create_parser.add_argument("--verbose", action="store_true", help="Debug logging")

    plan_parser = subparsers.add_parser("plan", help="Run the planner only")
    plan_parser.add_argument("--brief", required=True, help="Product brief")
    plan_parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if getattr(args, "no_deploy", False):
        overrides["enable_deploy"] = False
    settings = Settings.from_env(**overrides)

    if args.command == "create":
        return cmd_create(args, settings)
    return cmd_plan(args, settings)


if __name__ == "__main__":
    sys.exit(main())
