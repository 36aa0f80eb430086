"""Shell registry.

Provides:
- ShellRegistry: identifier -> personality lookup, populated once at startup
- BUILD_PRESETS: named sets of built-in shells
- load_shells / create_default_registry: registry factories
"""

from typing import Iterable, Iterator

from shellgate.logging import Loggers
from shellgate.settings import GatewaySettings
from shellgate.shells.base import BaseShell
from shellgate.shells.builtin import BUILTIN_SHELLS

logger = Loggers.registry()

BUILD_PRESETS: dict[str, list[str]] = {
    "full": ["powershell", "cmd", "gitbash", "bash", "wsl"],
    "windows": ["powershell", "cmd", "gitbash"],
    "unix": ["bash"],
    "gitbash-only": ["gitbash"],
    "cmd-only": ["cmd"],
    "powershell-only": ["powershell"],
}


class ShellRegistry:
    """Registry of shell personalities.

    Registration is idempotent: registering an identifier twice keeps the
    first personality and logs a warning.
    """

    def __init__(self, shells: Iterable[BaseShell] = ()):
        self._shells: dict[str, BaseShell] = {}
        for shell in shells:
            self.register(shell)

    def register(self, shell: BaseShell) -> bool:
        """Register a personality.

        Returns:
            True if registered, False if the identifier already existed.
        """
        if shell.name in self._shells:
            logger.warning("shell_already_registered", shell=shell.name)
            return False
        self._shells[shell.name] = shell
        logger.debug("shell_registered", shell=shell.name, kind=shell.kind.value)
        return True

    def unregister(self, name: str) -> bool:
        return self._shells.pop(name, None) is not None

    def get(self, name: str) -> BaseShell | None:
        """Get a personality by identifier."""
        return self._shells.get(name)

    def names(self) -> list[str]:
        return list(self._shells)

    def shells(self) -> list[BaseShell]:
        return list(self._shells.values())

    def __contains__(self, name: object) -> bool:
        return name in self._shells

    def __iter__(self) -> Iterator[BaseShell]:
        return iter(list(self._shells.values()))

    def __len__(self) -> int:
        return len(self._shells)


def shell_names_for(settings: GatewaySettings | None = None) -> list[str]:
    """Resolve which built-in shells to load.

    ``shell_preset`` wins over ``included_shells``; with neither, all
    built-in shells are loaded. Unknown presets fall back to the default.
    """
    if settings is not None and settings.shell_preset:
        preset = BUILD_PRESETS.get(settings.shell_preset)
        if preset is not None:
            return list(preset)
        logger.warning("unknown_shell_preset", preset=settings.shell_preset)

    if settings is not None and settings.included_shell_list:
        return settings.included_shell_list

    return list(BUILD_PRESETS["full"])


def load_shells(names: Iterable[str], registry: ShellRegistry | None = None) -> ShellRegistry:
    """Instantiate built-in personalities by identifier into a registry."""
    registry = registry if registry is not None else ShellRegistry()
    for name in names:
        shell_cls = BUILTIN_SHELLS.get(name)
        if shell_cls is None:
            logger.warning("unknown_shell_type", shell=name)
            continue
        registry.register(shell_cls())
    logger.debug("shells_loaded", count=len(registry), shells=registry.names())
    return registry


def create_default_registry(settings: GatewaySettings | None = None) -> ShellRegistry:
    """Registry holding the built-in shells selected by ``settings``."""
    return load_shells(shell_names_for(settings))
