"""Keyed debouncing of delayed coroutines."""

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field

Action = Callable[[], Awaitable[None]]


@dataclass
class KeyedDebouncer:
    """Runs the latest action per key once the key has been quiet for a delay.

    Scheduling a key that already has a pending task cancels that task, so at
    most one task per key is ever pending.
    """

    delay_seconds: float
    _tasks: dict[Hashable, asyncio.Task[None]] = field(default_factory=dict, init=False)
    _actions: dict[Hashable, Action] = field(default_factory=dict, init=False)

    def schedule(self, key: Hashable, action: Action) -> None:
        """Start or restart the delay for a key with a new action."""
        existing = self._tasks.pop(key, None)
        if existing is not None:
            existing.cancel()
        self._actions[key] = action
        self._tasks[key] = asyncio.get_running_loop().create_task(
            self._run_later(key)
        )

    def cancel(self, key: Hashable) -> bool:
        """Drop a pending action without running it."""
        task = self._tasks.pop(key, None)
        self._actions.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def pending_keys(self) -> list[Hashable]:
        return list(self._tasks)

    async def flush(self) -> None:
        """Run every pending action now instead of waiting for its timer."""
        keys = list(self._tasks)
        for key in keys:
            self._tasks.pop(key).cancel()
        for key in keys:
            action = self._actions.pop(key, None)
            if action is not None:
                await action()

    async def flush_key(self, key: Hashable) -> bool:
        """Run one key's pending action now; false when nothing was pending."""
        task = self._tasks.pop(key, None)
        if task is not None:
            task.cancel()
        action = self._actions.pop(key, None)
        if action is None:
            return False
        await action()
        return True

    async def _run_later(self, key: Hashable) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._tasks.pop(key, None)
        action = self._actions.pop(key, None)
        if action is not None:
            await action()
