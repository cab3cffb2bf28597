"""Shared fixtures: a throwaway git working tree and patch files."""

import shutil
import subprocess
import sys

import pytest

from patchrun.src.config import Settings, get_settings

GOOD_PATCH = """\
diff --git a/lib.txt b/lib.txt
--- a/lib.txt
+++ b/lib.txt
@@ -1 +1 @@
-hello
+patched
"""

BAD_PATCH = """\
diff --git a/lib.txt b/lib.txt
--- a/lib.txt
+++ b/lib.txt
@@ -1 +1 @@
-goodbye
+patched
"""

ADDING_PATCH = """\
diff --git a/lib.txt b/lib.txt
--- a/lib.txt
+++ b/lib.txt
@@ -1 +1 @@
-hello
+patched
diff --git a/new.txt b/new.txt
new file mode 100644
--- /dev/null
+++ b/new.txt
@@ -0,0 +1 @@
+created
"""

def git(cwd, *args):
    return subprocess.run(
        [
            "git",
            "-c", "user.name=patchrun",
            "-c", "user.email=patchrun@example.com",
            "-c", "commit.gpgsign=false",
            *args,
        ],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )

@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

@pytest.fixture
def project(tmp_path):
    """Project directory holding a committed tree, a patch and a checker directory."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    tree = tmp_path / "rust-src"
    tree.mkdir()
    (tree / "lib.txt").write_text("hello\n")
    git(tree, "init", "-q")
    git(tree, "add", "lib.txt")
    git(tree, "commit", "-q", "-m", "initial")

    (tmp_path / "rustfmt-syntax").mkdir()
    (tmp_path / "rust-src.patch").write_text(GOOD_PATCH)
    (tmp_path / "bad.patch").write_text(BAD_PATCH)
    (tmp_path / "adds.patch").write_text(ADDING_PATCH)
    return tmp_path

@pytest.fixture
def make_settings(project):
    """Settings for the project fixture, using the Python interpreter as build and checker tool."""
    def _make(**overrides):
        values = {
            "project_dir": project,
            "build_program": sys.executable,
            "build_args": ["-c", "pass"],
            "run_args": ["-c", "pass"],
            "checker_program": sys.executable,
            "checker_args": ["-c", "pass"],
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make

@pytest.fixture
def tree_status(project):
    """Porcelain status of the working tree, empty when clean."""
    def _status():
        return git(project / "rust-src", "status", "--porcelain").stdout
    return _status
