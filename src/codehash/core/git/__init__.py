"""Git operations subpackage.

Abstraction over the git CLI so repository sources can be tested with
in-memory trees instead of network clones.
"""

from codehash.core.git.abc import Git
from codehash.core.git.fake import FakeGit
from codehash.core.git.real import RealGit

__all__ = [
    "FakeGit",
    "Git",
    "RealGit",
]
