from __future__ import annotations

import logging
from collections.abc import Callable

from auto_log.errors import BranchQueryError
from auto_log.github import GitHubClient
from auto_log.models import RepositoryIdentity

logger = logging.getLogger(__name__)

PRIMARY_BRANCHES = frozenset({"main", "master"})


class BranchSafetyGuard:
    """Ask for confirmation before logging to a repository with an unusual default branch.

    Failing to read the branch is not a reason to block: the guard passes.
    """

    def __init__(self, client: GitHubClient, confirm: Callable[[str], bool]):
        self.client = client
        self.confirm = confirm

    def check(self, identity: RepositoryIdentity) -> bool:
        try:
            branch = self.client.get_default_branch(identity)
        except BranchQueryError as exc:
            logger.warning("Skipping branch safety check: %s", exc)
            return True

        if branch in PRIMARY_BRANCHES:
            return True
        logger.info("Default branch of %s is %r", identity.full_name, branch)
        return bool(self.confirm(branch))
