"""
Shared fixtures for disk usage and hardlink tests.
Creates isolated temporary directories with controlled test files.
"""
import os
import pytest
import tempfile
from pathlib import Path
from typing import Dict
import sys

# Add src/ to sys.path so the 'extdu' package is importable without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def usage_tree(temp_dir) -> Dict[str, Path]:
    """
    Creates a small tree with known sizes:

        root/
            a.txt        100 bytes
            b.txt        200 bytes
            c.py          50 bytes
            README        10 bytes (no extension)
            .hidden.cfg   30 bytes
            src/
                main.py   300 bytes
                util.py   150 bytes
                deep/
                    notes.txt  40 bytes
            docs/
                guide.md   80 bytes
            .git/
                HEAD       20 bytes
    """
    files = {"root": temp_dir}

    def make(relative: str, size: int) -> Path:
        path = temp_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size)
        files[relative] = path
        return path

    make("a.txt", 100)
    make("b.txt", 200)
    make("c.py", 50)
    make("README", 10)
    make(".hidden.cfg", 30)
    make("src/main.py", 300)
    make("src/util.py", 150)
    make("src/deep/notes.txt", 40)
    make("docs/guide.md", 80)
    make(".git/HEAD", 20)

    return files


@pytest.fixture
def duplicate_pair(temp_dir) -> Dict[str, Path]:
    """A master file and an identical, independent duplicate."""
    master = temp_dir / "master.bin"
    duplicate = temp_dir / "copy.bin"
    master.write_bytes(b"payload" * 100)
    duplicate.write_bytes(b"payload" * 100)
    return {"master": master, "duplicate": duplicate}


@pytest.fixture
def requires_symlinks(temp_dir):
    """Skips the test where the OS or user cannot create symlinks."""
    check = temp_dir / "_check_link"
    try:
        check.symlink_to(temp_dir)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")
    check.unlink()


@pytest.fixture
def requires_hardlinks(temp_dir):
    """Skips the test where the filesystem cannot create hardlinks."""
    source = temp_dir / "_check_src"
    target = temp_dir / "_check_dst"
    source.write_bytes(b"")
    try:
        os.link(source, target)
    except (OSError, NotImplementedError):
        pytest.skip("hardlinks not supported")
    finally:
        source.unlink()
    target.unlink()
