"""Abstract git interface used by repository sources."""

from abc import ABC, abstractmethod
from pathlib import Path


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real and fake) must implement this interface.
    """

    @abstractmethod
    def clone(self, url: str, dest: Path) -> None:
        """Clone a repository into dest.

        dest must not exist yet; the clone creates it.

        Args:
            url: Repository URL (https, ssh, git, file or local path)
            dest: Directory to clone into

        Raises:
            RuntimeError: If the clone fails, with command and stderr context
        """
        ...
