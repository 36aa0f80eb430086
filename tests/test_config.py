"""Tests for configuration models, loading, CLI overrides and resolution."""

import json
from pathlib import Path

import pytest

from shellgate.config import CliOverrides
from shellgate.config.cli import apply_cli_overrides, build_cli_layer
from shellgate.config.defaults import default_server_config
from shellgate.config.loader import (
    apply_initial_dir,
    find_config_file,
    load_config,
    merge_configs,
    parse_config,
    read_config_file,
)
from shellgate.config.models import (
    DEFAULT_BLOCKED_COMMANDS,
    ExecutableConfig,
    GlobalConfig,
    MountConfig,
    PathsConfig,
    PathsOverrides,
    RestrictionsConfig,
    RestrictionsOverrides,
    SecurityConfig,
    SecurityOverrides,
    ServerConfig,
    ShellConfig,
    ShellKind,
    ShellOverrides,
)
from shellgate.config.resolver import merge_appended, resolve_all, resolve_shell_config
from shellgate.errors import ConfigError, ErrorCode
from shellgate.shells import BashShell, CmdShell, ShellRegistry, WslShell


def global_with_commands(commands: list[str]) -> GlobalConfig:
    return GlobalConfig(restrictions=RestrictionsConfig(blocked_commands=commands))


def restriction_override(**lists) -> ShellConfig:
    return ShellConfig(overrides=ShellOverrides(restrictions=RestrictionsOverrides(**lists)))


class TestModels:
    """Tests for configuration model parsing."""

    def test_defaults(self):
        config = GlobalConfig()
        assert config.security.max_command_length == 2000
        assert config.security.command_timeout == 30
        assert config.security.restrict_working_directory is True
        assert config.restrictions.blocked_operators == ["&", "|", ";", "`"]
        assert config.logging.max_output_lines == 20

    def test_camel_case_keys(self):
        config = ServerConfig.model_validate(
            {
                "global": {
                    "security": {"maxCommandLength": 100, "allowCommandChaining": False},
                    "paths": {"allowedPaths": ["/data"], "initialDir": "/data"},
                },
            }
        )
        assert config.global_.security.max_command_length == 100
        assert config.global_.security.allow_command_chaining is False
        assert config.global_.paths.allowed_paths == ["/data"]

    def test_wsl_config_alias_and_mount_point_slash(self):
        shell = ShellConfig.model_validate({"kind": "wsl", "wslConfig": {"mountPoint": "/win"}})
        assert shell.kind is ShellKind.WSL
        assert shell.mount_config.mount_point == "/win/"
        assert shell.mount_config.inherit_global_paths is True

    def test_models_are_frozen(self):
        config = SecurityConfig()
        with pytest.raises(Exception):
            config.command_timeout = 5

    def test_with_shell_returns_copy(self):
        config = ServerConfig()
        updated = config.with_shell("bash", ShellConfig(enabled=False))
        assert "bash" not in config.shells
        assert updated.shells["bash"].enabled is False


class TestMergeRules:
    """Tests for layered restriction and security merging."""

    def test_blocked_commands_appended(self):
        resolved = resolve_shell_config(
            "bash",
            restriction_override(blocked_commands=["b"]),
            global_with_commands(["a"]),
            personality=BashShell(),
        )
        assert resolved.restrictions.blocked_commands == ["a", "b"]

    def test_empty_override_clears_defaults(self):
        resolved = resolve_shell_config(
            "bash",
            restriction_override(blocked_commands=[]),
            global_with_commands(["a"]),
            personality=BashShell(),
        )
        assert resolved.restrictions.blocked_commands == []

    def test_absent_override_inherits(self):
        resolved = resolve_shell_config(
            "bash", ShellConfig(), global_with_commands(["a"]), personality=BashShell()
        )
        assert resolved.restrictions.blocked_commands == ["a"]

    def test_duplicates_dropped_case_insensitively(self):
        assert merge_appended(["a", "B"], ["b", "c"]) == ["a", "B", "c"]
        assert merge_appended(["a"], None) == ["a"]

    def test_operators_replaced(self):
        resolved = resolve_shell_config(
            "bash",
            restriction_override(blocked_operators=[">"]),
            GlobalConfig(),
            personality=BashShell(),
        )
        assert resolved.restrictions.blocked_operators == [">"]

    def test_security_override_wins(self):
        shell = ShellConfig(
            overrides=ShellOverrides(security=SecurityOverrides(command_timeout=5)),
        )
        resolved = resolve_shell_config("bash", shell, GlobalConfig(), personality=BashShell())
        assert resolved.security.command_timeout == 5
        assert resolved.security.max_command_length == 2000

    def test_paths_override_replaces(self):
        shell = ShellConfig(
            overrides=ShellOverrides(paths=PathsOverrides(allowed_paths=["/srv"], initial_dir="/srv")),
        )
        global_config = GlobalConfig(paths=PathsConfig(allowed_paths=["/data"], initial_dir="/data"))
        resolved = resolve_shell_config("bash", shell, global_config, personality=BashShell())
        assert resolved.paths.allowed_paths == ["/srv"]
        assert resolved.paths.initial_dir == "/srv"

    def test_cli_layer_applied_after_shell_layer(self):
        cli_layer = ShellOverrides(restrictions=RestrictionsOverrides(blocked_commands=["x"]))
        resolved = resolve_shell_config(
            "bash",
            restriction_override(blocked_commands=[]),
            global_with_commands(["a"]),
            personality=BashShell(),
            cli_layer=cli_layer,
        )
        assert resolved.restrictions.blocked_commands == ["x"]

    def test_wsl_inherits_converted_global_paths(self):
        global_config = GlobalConfig(paths=PathsConfig(allowed_paths=["/data", "C:\\data"]))
        shell = ShellConfig(mount_config=MountConfig(mount_point="/mnt/", inherit_global_paths=True))
        resolved = resolve_shell_config("wsl", shell, global_config, personality=WslShell())
        assert "/mnt/c/data" in resolved.paths.allowed_paths
        assert resolved.mount_point == "/mnt/"

    def test_non_wsl_has_no_mount_config(self):
        resolved = resolve_shell_config("bash", ShellConfig(), GlobalConfig(), personality=BashShell())
        assert resolved.mount_config is None


class TestResolveErrors:
    """Tests for fatal configuration defects."""

    def test_non_positive_length(self):
        global_config = GlobalConfig(security=SecurityConfig(max_command_length=0))
        with pytest.raises(ConfigError) as exc_info:
            resolve_shell_config("bash", ShellConfig(), global_config, personality=BashShell())
        assert exc_info.value.error_code == ErrorCode.CONFIGURATION_ERROR

    def test_timeout_below_one(self):
        shell = ShellConfig(overrides=ShellOverrides(security=SecurityOverrides(command_timeout=0)))
        with pytest.raises(ConfigError, match="commandTimeout"):
            resolve_shell_config("bash", shell, GlobalConfig(), personality=BashShell())

    def test_missing_executable(self):
        shell = ShellConfig(kind=ShellKind.POSIX, executable=ExecutableConfig(command=""))
        with pytest.raises(ConfigError, match="no executable"):
            resolve_shell_config("custom", shell, GlobalConfig())

    def test_missing_kind(self):
        with pytest.raises(ConfigError, match="no kind"):
            resolve_shell_config("custom", ShellConfig(executable=ExecutableConfig(command="sh")), GlobalConfig())


class TestResolveAll:
    """Tests for resolving every configured shell."""

    def test_registered_shells_use_personality_defaults(self):
        registry = ShellRegistry([BashShell(), CmdShell()])
        resolved = resolve_all(ServerConfig(), registry)
        assert set(resolved) == {"bash", "cmd"}
        assert "mkfs" in resolved["bash"].restrictions.blocked_commands
        assert resolved["cmd"].security.allow_command_chaining is False
        assert resolved["cmd"].executable.command == "cmd.exe"

    def test_disabled_shell_skipped(self):
        registry = ShellRegistry([BashShell(), CmdShell()])
        config = ServerConfig(shells={"cmd": ShellConfig(enabled=False)})
        assert set(resolve_all(config, registry)) == {"bash"}

    def test_custom_shell_registered_from_kind(self):
        registry = ShellRegistry([BashShell()])
        config = ServerConfig(
            shells={
                "zsh": ShellConfig(
                    kind=ShellKind.POSIX,
                    executable=ExecutableConfig(command="zsh", args=["-c"]),
                )
            }
        )
        resolved = resolve_all(config, registry)
        assert resolved["zsh"].kind is ShellKind.POSIX
        assert registry.get("zsh").kind is ShellKind.POSIX

    def test_unknown_shell_without_kind_skipped(self):
        registry = ShellRegistry([BashShell()])
        config = ServerConfig(shells={"mystery": ShellConfig()})
        assert "mystery" not in resolve_all(config, registry)

    def test_cli_layer_reaches_every_shell(self):
        registry = ShellRegistry([BashShell(), CmdShell()])
        layer = build_cli_layer(CliOverrides(command_timeout=90))
        resolved = resolve_all(ServerConfig(), registry, layer)
        assert all(r.security.command_timeout == 90 for r in resolved.values())


class TestLoader:
    """Tests for configuration file loading and merging."""

    def test_read_json(self, tmp_path: Path):
        path = tmp_path / "shellgate.json"
        path.write_text(json.dumps({"global": {"security": {"commandTimeout": 60}}}))
        assert read_config_file(path) == {"global": {"security": {"commandTimeout": 60}}}

    def test_read_yaml(self, tmp_path: Path):
        path = tmp_path / "shellgate.yaml"
        path.write_text("global:\n  security:\n    commandTimeout: 60\n")
        assert read_config_file(path)["global"]["security"]["commandTimeout"] == 60

    def test_empty_yaml_is_empty_mapping(self, tmp_path: Path):
        path = tmp_path / "shellgate.yml"
        path.write_text("")
        assert read_config_file(path) == {}

    def test_malformed_json(self, tmp_path: Path):
        path = tmp_path / "shellgate.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            read_config_file(path)

    def test_non_mapping(self, tmp_path: Path):
        path = tmp_path / "shellgate.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="mapping"):
            read_config_file(path)

    def test_explicit_path_missing(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            find_config_file(tmp_path / "nope.json")

    def test_search_paths(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        assert find_config_file() is None

        (tmp_path / "shellgate.yaml").write_text("{}")
        assert find_config_file() == Path("shellgate.yaml")

    def test_invalid_schema(self):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            parse_config({"global": {"security": {"commandTimeout": "soon"}}})

    def test_legacy_wsl_flag_accepted(self):
        config = parse_config({"includeDefaultWSL": True, "shells": {"wsl": {"includeDefaultWSL": False}}})
        assert "wsl" in config.shells
        assert "includeDefaultWSL" not in json.dumps(config.model_dump(mode="json", by_alias=True))

    def test_global_sections_merge_key_wise(self):
        default = ServerConfig()
        user = parse_config({"global": {"security": {"commandTimeout": 60}}})
        merged = merge_configs(default, user)
        assert merged.global_.security.command_timeout == 60
        assert merged.global_.security.max_command_length == 2000
        assert merged.global_.restrictions.blocked_commands == DEFAULT_BLOCKED_COMMANDS

    def test_user_blocklist_replaces_default(self):
        user = parse_config({"global": {"restrictions": {"blockedCommands": []}}})
        merged = merge_configs(ServerConfig(), user)
        assert merged.global_.restrictions.blocked_commands == []
        assert merged.global_.restrictions.blocked_arguments

    def test_user_shell_entry_drops_default_restrictions(self):
        default = default_server_config(ShellRegistry([BashShell()]))
        user = parse_config({"shells": {"bash": {"overrides": {"security": {"commandTimeout": 10}}}}})
        merged = merge_configs(default, user)
        bash = merged.shells["bash"]
        assert bash.executable.command == "bash"
        assert bash.overrides.restrictions is None
        assert bash.overrides.security.command_timeout == 10

    def test_user_shell_entry_keeps_default_security(self):
        default = default_server_config(ShellRegistry([CmdShell()]))
        user = parse_config({"shells": {"cmd": {"overrides": {"security": {"commandTimeout": 10}}}}})
        cmd = merge_configs(default, user).shells["cmd"]
        assert cmd.overrides.security.allow_command_chaining is False
        assert cmd.overrides.security.command_timeout == 10

    def test_load_config_end_to_end(self, tmp_path: Path):
        path = tmp_path / "shellgate.yaml"
        path.write_text(
            "global:\n"
            "  security:\n"
            "    commandTimeout: 60\n"
            "  paths:\n"
            "    allowedPaths: [/data]\n"
            "shells:\n"
            "  bash:\n"
            "    overrides:\n"
            "      restrictions:\n"
            "        blockedCommands: [mkfs]\n"
            "  custom:\n"
            "    kind: posix\n"
            "    executable: {command: /bin/sh, args: [-c]}\n"
        )
        registry = ShellRegistry([BashShell()])
        config = load_config(path, registry)
        resolved = resolve_all(config, registry)

        assert resolved["bash"].security.command_timeout == 60
        assert resolved["bash"].restrictions.blocked_commands == [*DEFAULT_BLOCKED_COMMANDS, "mkfs"]
        assert resolved["custom"].executable.args == ["-c"]
        assert resolved["custom"].paths.allowed_paths == ["/data"]

    def test_load_config_without_file_uses_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        config = load_config(registry=ShellRegistry([BashShell()]))
        assert list(config.shells) == ["bash"]


class TestApplyInitialDir:
    def test_initial_dir_added_to_allowed(self, workspace: Path):
        config = ServerConfig(
            global_=GlobalConfig(paths=PathsConfig(allowed_paths=["/elsewhere"], initial_dir=str(workspace))),
        )
        paths = apply_initial_dir(config).global_.paths
        assert paths.allowed_paths == ["/elsewhere", str(workspace)]
        assert paths.initial_dir == str(workspace)

    def test_missing_initial_dir_dropped(self, tmp_path: Path):
        config = ServerConfig(
            global_=GlobalConfig(paths=PathsConfig(initial_dir=str(tmp_path / "missing"))),
        )
        assert apply_initial_dir(config).global_.paths.initial_dir is None

    def test_unrestricted_leaves_allowed_paths(self, workspace: Path):
        config = ServerConfig(
            global_=GlobalConfig(
                security=SecurityConfig(restrict_working_directory=False),
                paths=PathsConfig(initial_dir=str(workspace)),
            ),
        )
        assert apply_initial_dir(config).global_.paths.allowed_paths == []


class TestCliOverrides:
    """Tests for command-line overrides."""

    @pytest.fixture
    def config(self) -> ServerConfig:
        return default_server_config(ShellRegistry([BashShell(), CmdShell(), WslShell()]))

    def test_yolo_and_unsafe_conflict(self):
        with pytest.raises(ConfigError):
            CliOverrides(yolo=True, unsafe=True).check()

    def test_single_shell_enabled(self, config: ServerConfig):
        updated = apply_cli_overrides(config, CliOverrides(shell="bash"))
        assert {name for name, entry in updated.shells.items() if entry.enabled} == {"bash"}

    def test_unknown_shell(self, config: ServerConfig):
        with pytest.raises(ConfigError, match="Unknown shell"):
            apply_cli_overrides(config, CliOverrides(shell="fish"))

    def test_allowed_dirs_force_restriction(self, config: ServerConfig):
        config = config.with_global(
            config.global_.model_copy(update={"security": SecurityConfig(restrict_working_directory=False)})
        )
        updated = apply_cli_overrides(config, CliOverrides(allowed_dirs=["/data"]))
        assert updated.global_.paths.allowed_paths == ["/data"]
        assert updated.global_.security.restrict_working_directory is True

    def test_mount_point_gets_trailing_slash(self, config: ServerConfig):
        updated = apply_cli_overrides(config, CliOverrides(wsl_mount_point="/win"))
        assert updated.shells["wsl"].mount_config.mount_point == "/win/"

    def test_invalid_output_lines_ignored(self, config: ServerConfig):
        updated = apply_cli_overrides(config, CliOverrides(max_output_lines=-5))
        assert updated.global_.logging.max_output_lines == 20

    def test_no_overrides(self, config: ServerConfig):
        assert apply_cli_overrides(config, None) is config
        assert build_cli_layer(None) is None
        assert build_cli_layer(CliOverrides()) is None

    def test_security_numbers(self):
        layer = build_cli_layer(CliOverrides(max_command_length=500, command_timeout=0))
        assert layer.security.max_command_length == 500
        assert layer.security.command_timeout is None

    def test_yolo_clears_lists_but_keeps_restriction(self):
        layer = build_cli_layer(CliOverrides(yolo=True))
        assert layer.restrictions.blocked_commands == []
        assert layer.restrictions.blocked_operators == []
        assert layer.security.enable_injection_protection is False
        assert layer.security.restrict_working_directory is None

    def test_unsafe_disables_restriction(self):
        layer = build_cli_layer(CliOverrides(unsafe=True))
        assert layer.security.restrict_working_directory is False

    def test_allow_all_dirs_without_paths(self, config: ServerConfig):
        layer = build_cli_layer(CliOverrides(allow_all_dirs=True), config)
        assert layer.security.restrict_working_directory is False

    def test_allow_all_dirs_ignored_with_paths(self, config: ServerConfig):
        updated = apply_cli_overrides(config, CliOverrides(allowed_dirs=["/data"]))
        layer = build_cli_layer(CliOverrides(allow_all_dirs=True), updated)
        assert layer is None

    def test_yolo_resolves_to_empty_lists(self, config: ServerConfig):
        registry = ShellRegistry([BashShell(), CmdShell(), WslShell()])
        resolved = resolve_all(config, registry, build_cli_layer(CliOverrides(yolo=True)))
        for shell in resolved.values():
            assert shell.restrictions.blocked_commands == []
            assert shell.restrictions.blocked_arguments == []
            assert shell.restrictions.blocked_operators == []
            assert shell.security.restrict_working_directory is True
