"""Shell personalities and the registry that holds them."""

from shellgate.config.models import ShellKind
from shellgate.shells.base import (
    BaseShell,
    MixedShell,
    PosixShell,
    WindowsShell,
    WslShellBase,
    generic_shell,
    strategy_for_kind,
)
from shellgate.shells.builtin import (
    BUILTIN_SHELLS,
    BashShell,
    CmdShell,
    GitBashShell,
    PowerShellShell,
    WslShell,
)
from shellgate.shells.registry import (
    BUILD_PRESETS,
    ShellRegistry,
    create_default_registry,
    load_shells,
    shell_names_for,
)

__all__ = [
    "ShellKind",
    "BaseShell",
    "WindowsShell",
    "MixedShell",
    "PosixShell",
    "WslShellBase",
    "generic_shell",
    "strategy_for_kind",
    "BUILTIN_SHELLS",
    "CmdShell",
    "PowerShellShell",
    "GitBashShell",
    "BashShell",
    "WslShell",
    "BUILD_PRESETS",
    "ShellRegistry",
    "create_default_registry",
    "load_shells",
    "shell_names_for",
]
