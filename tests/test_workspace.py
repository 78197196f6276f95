"""Tests for utils.workspace: slugging, dedup and contained writes."""

import os

import pytest

from core.state import OutputFile
from utils.workspace import get_output_dir, slugify, write_files


def test_slugify():
    assert slugify("Habit Tracker!") == "habit-tracker"
    assert slugify("  my__app  ") == "my-app"
    assert slugify("!!!") == "project"


def test_output_dir_dedup(tmp_path):
    first = get_output_dir(str(tmp_path), "habit-tracker")
    os.makedirs(first)
    second = get_output_dir(str(tmp_path), "habit-tracker")
    assert second == first + "-2"


def test_write_files_creates_nested_dirs(tmp_path):
    written = write_files(str(tmp_path), [
        OutputFile("app/api/ping/route.ts", "export {}"),
        OutputFile("README.md", "# hi"),
    ])
    assert written == ["app/api/ping/route.ts", "README.md"]
    assert (tmp_path / "app" / "api" / "ping" / "route.ts").read_text() == "export {}"


def test_write_files_rejects_escaping_paths(tmp_path):
    with pytest.raises(ValueError, match="escapes"):
        write_files(str(tmp_path / "out"), [OutputFile("../evil.txt", "x")])
