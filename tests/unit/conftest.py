"""Shared fixtures: throwaway Git repositories and bare remotes."""

import tempfile
from pathlib import Path

import git
import pytest

from repopulse.models import RepositoryHandle, Settings


def configure_repo(repo: git.Repo, name: str = "Test User", email: str = "test@example.com") -> git.Repo:
    """Give a repository a deterministic identity and push behaviour.

    No pull strategy is configured, so pulls run under git's defaults.
    """
    writer = repo.config_writer()
    writer.set_value("user", "name", name)
    writer.set_value("user", "email", email)
    writer.set_value("push", "default", "simple")
    writer.set_value("commit", "gpgsign", "false")
    writer.release()
    return repo


def commit_file(repo: git.Repo, relative_path: str, content: str, message: str, **kwargs) -> git.Commit:
    """Write a file, stage it and commit it."""
    path = Path(repo.working_tree_dir) / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([relative_path])
    return repo.index.commit(message, **kwargs)


@pytest.fixture
def tmp_dir():
    """Temporary directory removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings():
    """Settings independent of the developer's environment."""
    return Settings(git_timeout=30, max_workers=2, default_remote="origin")


@pytest.fixture
def test_repo(tmp_dir):
    """Repository with three commits."""
    repo_path = tmp_dir / "repo"
    repo = configure_repo(git.Repo.init(repo_path))

    commit_file(repo, "README.md", "# Test Project\n", "Initial commit")
    commit_file(repo, "main.py", "def hello():\n    print('Hello, World!')\n", "Add main.py for task 3")
    commit_file(repo, "main.py", "def hello():\n    print('Hello, repopulse!')\n", "Fix #7: Update hello message")

    yield repo_path


@pytest.fixture
def empty_repo(tmp_dir):
    """Initialized repository without commits."""
    repo_path = tmp_dir / "empty"
    configure_repo(git.Repo.init(repo_path))
    yield repo_path


@pytest.fixture
def remote_setup(tmp_dir):
    """A bare remote and a working repository with one commit and no upstream.

    Yields:
        (bare_path, work_path)
    """
    bare_path = tmp_dir / "remote.git"
    git.Repo.init(bare_path, bare=True)

    work_path = tmp_dir / "work"
    work = configure_repo(git.Repo.init(work_path))
    work.create_remote("origin", str(bare_path))
    commit_file(work, "README.md", "# Work\n", "Initial commit")

    yield bare_path, work_path


def clone(bare_path: Path, target: Path, name: str = "Other User", email: str = "other@example.com") -> git.Repo:
    """Clone the bare remote into ``target`` with its own identity."""
    return configure_repo(git.Repo.clone_from(str(bare_path), target), name=name, email=email)


def handle_for(path: Path) -> RepositoryHandle:
    return RepositoryHandle(path=path)
