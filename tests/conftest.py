"""Shared fixtures: a planned manifest and a generated project that satisfies it."""

import json

import pytest

from core.state import FileSpec, Manifest, OutputFile, Stack

PROJECT_NAME = "habit-tracker"

PACKAGE_JSON = {
    "name": PROJECT_NAME,
    "version": "0.1.0",
    "private": True,
    "scripts": {"dev": "next dev", "build": "next build", "start": "next start", "lint": "next lint"},
    "dependencies": {"next": "14.2.5", "react": "^18", "react-dom": "^18"},
    "devDependencies": {"typescript": "^5", "@types/react": "^18"},
}

PRD = (
    "Habit Tracker lets a person record daily habits, see current streaks "
    "and review a weekly summary of completions."
)


def make_files(package=None, **overrides):
    """Valid generated files; keyword overrides replace content by path key."""
    contents = {
        "package.json": json.dumps(package or PACKAGE_JSON, indent=2),
        "tsconfig.json": '{"compilerOptions": {"strict": true}}',
        "app/page.tsx": "export default function Page() { return <main>Habits</main>; }",
        "app/layout.tsx": "export default function RootLayout({ children }) { return children; }",
        "app/api/ping/route.ts": "export async function GET() { return Response.json({ ok: true }); }",
        "README.md": "# Habit Tracker\n",
        ".gitignore": "node_modules\n.next\n",
    }
    contents.update(overrides)
    return [OutputFile(path=p, content=c) for p, c in contents.items()]


def make_manifest(project_name=PROJECT_NAME):
    paths = ["package.json", "tsconfig.json", "app/page.tsx", "app/layout.tsx",
             "app/api/ping/route.ts", "README.md", ".gitignore"]
    return Manifest(
        project_name=project_name,
        stack=Stack(framework="Next.js 14", language="TypeScript", styling="Tailwind CSS"),
        file_specs=tuple(FileSpec(path=p, purpose=f"{p} purpose") for p in paths),
        features=("Daily check-ins", "Streaks"),
        prd=PRD,
    )


def files_response(files):
    """Model response text carrying files as the expected JSON payload."""
    return json.dumps({"files": [{"path": f.path, "content": f.content} for f in files]})


def plan_payload(**plan_overrides):
    plan = {
        "project_name": PROJECT_NAME,
        "stack": {"framework": "Next.js 14", "language": "TypeScript", "styling": "Tailwind CSS"},
        "files": [
            {"path": p, "purpose": f"{p} purpose"}
            for p in ["package.json", "tsconfig.json", "app/page.tsx", "app/layout.tsx",
                      "README.md", ".gitignore"]
        ],
        "features": ["Daily check-ins", "Streaks"],
    }
    plan.update(plan_overrides)
    return {"prd": PRD, "plan": plan}


@pytest.fixture
def manifest():
    return make_manifest()


@pytest.fixture
def valid_files():
    return make_files()
