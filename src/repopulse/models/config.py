"""Configuration models."""

from pathlib import Path

import git
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RepositoryHandle(BaseModel):
    """Identifies a path believed to be (or become) a Git working tree.

    The handle carries no repository state. Every query opens the repository
    again so that results always reflect what Git reports right now.
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Absolute path to the working tree")

    def open(self) -> git.Repo:
        """Open a fresh GitPython repository object for this path.

        A path inside a working tree opens the enclosing repository.

        Raises:
            git.exc.NoSuchPathError: If the path does not exist
            git.exc.InvalidGitRepositoryError: If the path is not inside a working tree
        """
        return git.Repo(self.path, search_parent_directories=True)

    def __str__(self) -> str:
        return str(self.path)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    All settings are prefixed with REPOPULSE_ (e.g., REPOPULSE_GIT_TIMEOUT).
    """

    model_config = SettingsConfigDict(
        env_prefix="REPOPULSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Git invocation
    git_timeout: float = Field(
        default=60.0,
        description="Seconds before a git subprocess is killed",
    )
    default_remote: str = Field("origin", description="Remote used when none is given")

    # History walking
    max_commits: int = Field(100, description="Default ceiling for history walks")
    max_workers: int = Field(4, description="Threads used for per-commit diffstat queries")

    # Task CLI collaborator
    task_cli_command: str = Field("task-master", description="Task tracking CLI executable")
    task_cli_timeout: float = Field(5.0, description="Seconds before the task CLI is killed")

    # Logging
    log_level: str = "INFO"
