"""Built-in shell personalities."""

from shellgate.config.models import ExecutableConfig, SecurityOverrides
from shellgate.shells.base import BaseShell, MixedShell, PosixShell, WindowsShell, WslShellBase


class CmdShell(WindowsShell):
    default_name = "cmd"
    default_display_name = "Command Prompt (CMD)"
    default_executable = ExecutableConfig(command="cmd.exe", args=["/c"])

    def blocked_commands(self) -> list[str]:
        return [
            "del",
            "erase",
            "rd",
            "rmdir",
            "format",
            "diskpart",
            "reg",
            "regedit",
            "shutdown",
            "restart",
        ]

    def default_security(self) -> SecurityOverrides | None:
        return SecurityOverrides(allow_command_chaining=False)


class PowerShellShell(WindowsShell):
    default_name = "powershell"
    default_display_name = "PowerShell"
    default_executable = ExecutableConfig(
        command="powershell.exe",
        args=["-NoProfile", "-NonInteractive", "-Command"],
    )

    def blocked_commands(self) -> list[str]:
        return [
            "Invoke-WebRequest",
            "Invoke-RestMethod",
            "Start-Process",
            "New-Object",
            "Invoke-Expression",
            "iex",
            "wget",
            "curl",
            "Invoke-Command",
            "Enter-PSSession",
        ]

    def default_security(self) -> SecurityOverrides | None:
        return SecurityOverrides(allow_command_chaining=False)


class GitBashShell(MixedShell):
    default_name = "gitbash"
    default_display_name = "Git Bash"
    default_executable = ExecutableConfig(
        command="C:\\Program Files\\Git\\bin\\bash.exe",
        args=["-c"],
    )

    def blocked_commands(self) -> list[str]:
        return ["rm", "rm -rf /", "rm -rf /*", "mkfs", "dd", "wget", "curl"]


class BashShell(PosixShell):
    default_name = "bash"
    default_display_name = "Bash"
    default_executable = ExecutableConfig(command="bash", args=["-c"])

    def blocked_commands(self) -> list[str]:
        return ["rm -rf /", "rm -rf /*", "mkfs", "dd", "fdisk", "wget", "curl", "sudo rm -rf /"]


class WslShell(WslShellBase):
    default_name = "wsl"
    default_display_name = "WSL"
    default_executable = ExecutableConfig(command="wsl.exe", args=["-e"])

    def blocked_commands(self) -> list[str]:
        return ["rm -rf /", "rm -rf /*", "mkfs", "dd", "fdisk", "sudo rm -rf /"]


BUILTIN_SHELLS: dict[str, type[BaseShell]] = {
    "powershell": PowerShellShell,
    "cmd": CmdShell,
    "gitbash": GitBashShell,
    "bash": BashShell,
    "wsl": WslShell,
}
