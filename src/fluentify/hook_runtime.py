"""Hook execution runtime with per-observer fault isolation."""

from __future__ import annotations

import inspect
from typing import Any

import pluggy
from loguru import logger


class HookRuntime:
    """Safe wrapper around pluggy hook execution."""

    def __init__(self, plugin_manager: pluggy.PluginManager) -> None:
        self._plugin_manager = plugin_manager

    def notify(self, hook_name: str, **kwargs: Any) -> None:
        """Run every implementation of ``hook_name``; observer failures are logged and skipped."""

        for impl in self._iter_hookimpls(hook_name):
            call_kwargs = {name: kwargs[name] for name in impl.argnames if name in kwargs}
            try:
                value = impl.function(**call_kwargs)
            except Exception:
                logger.opt(exception=True).warning(
                    "hook.failed hook={} observer={}",
                    hook_name,
                    impl.plugin_name or "<unknown>",
                )
                continue
            if inspect.isawaitable(value):
                close = getattr(value, "close", None)
                if callable(close):
                    close()
                logger.warning(
                    "hook.async_not_supported hook={} observer={}",
                    hook_name,
                    impl.plugin_name or "<unknown>",
                )

    def hook_report(self) -> dict[str, list[str]]:
        """Build a hook->observers mapping for diagnostics."""

        report: dict[str, list[str]] = {}
        for hook_name, hook_caller in sorted(self._plugin_manager.hook.__dict__.items()):
            if hook_name.startswith("_") or not hasattr(hook_caller, "get_hookimpls"):
                continue
            names = [impl.plugin_name for impl in hook_caller.get_hookimpls()]
            if names:
                report[hook_name] = names
        return report

    def _iter_hookimpls(self, hook_name: str) -> list[Any]:
        hook = getattr(self._plugin_manager.hook, hook_name, None)
        if hook is None or not hasattr(hook, "get_hookimpls"):
            return []
        return list(reversed(hook.get_hookimpls()))
