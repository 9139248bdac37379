import asyncio

import structlog

from shared.observability import post_commit_hook_failures_total

logger = structlog.get_logger(__name__)


class PostCommitHook:
    def __init__(self, name, action):
        self.name = name
        self.action = action


class PostCommitHooks:
    """
    Side effects that run only after a status transition has committed.

    Each hook runs in its own error boundary: a failing hook is logged and
    counted, and never changes the outcome of the transition that scheduled it.
    """

    def __init__(self):
        self.hooks = []

    def add(self, name: str, action):
        """Builder pattern to register a zero-argument coroutine function."""
        self.hooks.append(PostCommitHook(name, action))
        return self

    async def run(self) -> dict[str, bool]:
        """Runs every hook concurrently. Returns hook name -> succeeded."""
        if not self.hooks:
            return {}
        outcomes = await asyncio.gather(*(self._guarded(hook) for hook in self.hooks))
        return {hook.name: ok for hook, ok in zip(self.hooks, outcomes)}

    async def _guarded(self, hook: PostCommitHook) -> bool:
        try:
            await hook.action()
            return True
        except Exception as e:
            # A failing side effect MUST NOT fail the committed transition
            logger.error("post_commit_hook_failed", hook=hook.name, error=str(e))
            post_commit_hook_failures_total.labels(hook=hook.name).inc()
            return False
