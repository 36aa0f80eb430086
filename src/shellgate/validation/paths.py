"""Cross-shell path normalization and allow-list checks.

Five path dialects meet here:

- native Windows: ``C:\\Users\\me`` and UNC ``\\\\server\\share``
- POSIX: ``/home/me``
- WSL-mounted: ``/mnt/c/Users/me`` (mount point is configurable)
- mixed (Git Bash): ``/c/Users/me`` alongside ``C:\\Users\\me``
- PowerShell: same dialect as native Windows

Every function here is pure string manipulation; nothing touches the
filesystem. Comparisons are case-insensitive.
"""

from __future__ import annotations

import ntpath
import posixpath
import re
from typing import TYPE_CHECKING, Iterable

from shellgate.config.models import DEFAULT_MOUNT_POINT, MountConfig, ShellKind
from shellgate.errors import (
    InvalidPathFormatError,
    PathConversionError,
    PathNotAllowedError,
)
from shellgate.logging import Loggers

if TYPE_CHECKING:
    from shellgate.validation.context import ValidationContext

logger = Loggers.validation()

# X: followed by an optional separator and the rest of the path
_DRIVE_PATH = re.compile(r"^([A-Za-z]):(?:[\\/]+(.*))?$", re.DOTALL)
_WINDOWS_ABSOLUTE = re.compile(r"^[A-Za-z]:(?:[\\/]|$)")
_MIXED_DRIVE = re.compile(r"^/([A-Za-z])(?:/(.*))?$", re.DOTALL)
_UNIX_SHAPE = re.compile(r"^(?:/|\.\.?/|\.\.?$)")


def is_unc_path(path: str) -> bool:
    """Check for ``\\\\server\\share`` or ``//server/share``."""
    return path.startswith("\\\\") or path.startswith("//")


def is_windows_path(path: str) -> bool:
    """Check for a drive-letter or backslash UNC path."""
    return bool(_WINDOWS_ABSOLUTE.match(path)) or path.startswith("\\\\")


def is_mixed_drive_path(path: str) -> bool:
    """Check for a Git Bash drive path such as ``/c/Users``."""
    return bool(_MIXED_DRIVE.match(path))


def windows_to_mounted_form(windows_path: str, mount_point: str = DEFAULT_MOUNT_POINT) -> str:
    """Convert a Windows path to its WSL-mounted form.

    ``C:\\temp`` becomes ``/mnt/c/temp``. Paths without a drive-letter
    prefix (POSIX or relative) are returned unchanged. The converted path
    is lower-cased since Windows drives are mounted case-insensitively.

    Args:
        windows_path: Path to convert.
        mount_point: Where Windows drives are mounted.

    Returns:
        The mounted path.

    Raises:
        PathConversionError: For UNC paths, which have no mounted form.
    """
    if is_unc_path(windows_path):
        raise PathConversionError(windows_path, "WSL mount")

    match = _DRIVE_PATH.match(windows_path)
    if not match:
        return windows_path

    drive = match.group(1).lower()
    rest = (match.group(2) or "").replace("\\", "/")
    rest = "/".join(segment for segment in rest.split("/") if segment).lower()

    base = f"{mount_point.rstrip('/')}/{drive}"
    return f"{base}/{rest}" if rest else base


def mounted_to_windows_form(path: str, mount_point: str = DEFAULT_MOUNT_POINT) -> str | None:
    """Convert ``/mnt/c/x`` back to ``C:\\x``.

    Returns:
        The Windows path, or None if ``path`` is not under the mount point.
    """
    prefix = re.escape(mount_point.rstrip("/"))
    match = re.match(rf"^{prefix}/([A-Za-z])(?:/(.*))?$", path, re.DOTALL)
    if not match:
        return None
    drive = match.group(1).upper()
    rest = (match.group(2) or "").replace("/", "\\")
    return f"{drive}:\\{rest}"


def mixed_to_windows_form(path: str) -> str:
    """Convert a Git Bash drive path (``/c/x``) to ``C:\\x``; others unchanged."""
    match = _MIXED_DRIVE.match(path)
    if not match:
        return path
    drive = match.group(1).upper()
    rest = (match.group(2) or "").replace("/", "\\")
    return f"{drive}:\\{rest}"


def windows_to_mixed_form(path: str) -> str:
    """Convert ``C:\\x`` to the Git Bash form ``/c/x``; others unchanged."""
    match = _DRIVE_PATH.match(path)
    if not match:
        return path
    rest = (match.group(2) or "").replace("\\", "/").strip("/")
    drive = match.group(1).lower()
    return f"/{drive}/{rest}" if rest else f"/{drive}"


def _normalize_windows(path: str) -> str:
    path = path.replace("/", "\\")
    if path.startswith("\\\\"):
        path = "\\\\" + re.sub(r"\\+", r"\\", path[2:])
    else:
        path = re.sub(r"\\+", r"\\", path)
    path = ntpath.normpath(path)
    if re.match(r"^[A-Za-z]:", path):
        path = path[0].upper() + path[1:]
        if len(path) == 2:
            path += "\\"
    return path


def _normalize_posix(path: str) -> str:
    return posixpath.normpath(re.sub(r"/+", "/", path))


def normalize_to_canonical_form(
    path: str,
    kind: ShellKind | None = None,
    mount_point: str = DEFAULT_MOUNT_POINT,
) -> str:
    """Canonicalize a path for the given shell kind.

    Collapses repeated separators, resolves ``.`` and ``..`` textually and
    folds to the kind's separator (backslash for Windows, forward slash
    otherwise). Mixed kind rewrites ``/c/...`` to ``C:\\...`` after
    resolving dot segments, so ``/c/../d`` lands on ``D:\\``; WSL kind
    rewrites ``C:\\...`` to its mounted form.

    Args:
        path: Path to normalize.
        kind: Shell kind; None picks the dialect from the path's own shape.
        mount_point: Mount point used by the WSL kind.

    Returns:
        Canonical path (case preserved; compare with ``path_key``).
    """
    path = path.strip()
    if not path:
        return path

    if kind is None:
        kind = ShellKind.WINDOWS if is_windows_path(path) else ShellKind.POSIX

    if kind is ShellKind.WINDOWS:
        return _normalize_windows(path)

    if kind is ShellKind.MIXED:
        if is_windows_path(path):
            return _normalize_windows(path)
        # Git Bash resolves ".." before the drive prefix: /c/.. is /
        path = _normalize_posix(path)
        if is_mixed_drive_path(path):
            return _normalize_windows(mixed_to_windows_form(path))
        return path

    if kind is ShellKind.WSL and _WINDOWS_ABSOLUTE.match(path):
        return _normalize_posix(windows_to_mounted_form(path, mount_point))

    return _normalize_posix(path)


def path_key(path: str, kind: ShellKind | None = None, mount_point: str = DEFAULT_MOUNT_POINT) -> str:
    """Case-folded canonical form used for comparisons."""
    return normalize_to_canonical_form(path, kind, mount_point).lower()


def _is_same_or_descendant(child: str, parent: str) -> bool:
    if child == parent:
        return True
    sep = "\\" if is_windows_path(parent) else "/"
    prefix = parent if parent.endswith(sep) else parent + sep
    return child.startswith(prefix)


def is_path_allowed(
    candidate: str,
    allowed_paths: Iterable[str],
    kind: ShellKind | None = None,
    mount_point: str = DEFAULT_MOUNT_POINT,
) -> bool:
    """Check whether ``candidate`` is an allowed path or lies beneath one.

    The check is separator-aware (``/data2`` is not under ``/data``),
    ignores trailing separators and is case-insensitive.
    """
    candidate_key = path_key(candidate, kind, mount_point)
    if not candidate_key:
        return False
    for allowed in allowed_paths:
        allowed_key = path_key(allowed, kind, mount_point)
        if allowed_key and _is_same_or_descendant(candidate_key, allowed_key):
            return True
    return False


def minimize_paths(
    paths: Iterable[str],
    kind: ShellKind | None = None,
    mount_point: str = DEFAULT_MOUNT_POINT,
) -> list[str]:
    """Canonicalize, deduplicate and drop paths nested inside other entries.

    Order of first appearance is preserved.
    """
    entries: list[tuple[str, str]] = []
    seen: set[str] = set()
    for path in paths:
        canonical = normalize_to_canonical_form(path, kind, mount_point)
        if not canonical:
            continue
        key = canonical.lower()
        if key in seen:
            continue
        seen.add(key)
        entries.append((canonical, key))

    return [
        canonical
        for canonical, key in entries
        if not any(
            other != key and _is_same_or_descendant(key, other) for _, other in entries
        )
    ]


def resolve_allowed_paths(
    global_paths: Iterable[str],
    shell_paths: Iterable[str] | None = None,
    mount_config: MountConfig | None = None,
    kind: ShellKind | None = None,
) -> list[str]:
    """Build a shell's effective allow-list.

    Starts from the shell's own list when present. When the shell inherits
    global paths through ``mount_config``, every global path is converted to
    its mounted form and appended; unconvertible entries (UNC) are skipped
    with a warning. A mounted shell that does not inherit uses only its own
    list. Any other shell uses its own list, or the global list when it has
    none.

    The result is deduplicated and minimal: an entry nested inside another
    entry is dropped in favour of its ancestor. Running the function on its
    own output gives the same list.
    """
    if mount_config is not None and kind is None:
        kind = ShellKind.WSL
    mount_point = mount_config.mount_point if mount_config else DEFAULT_MOUNT_POINT

    if mount_config is not None and mount_config.inherit_global_paths:
        entries = list(shell_paths or [])
        for path in global_paths:
            try:
                entries.append(windows_to_mounted_form(path, mount_point))
            except PathConversionError:
                logger.warning("inherited_path_not_convertible", path=path, mount_point=mount_point)
    elif shell_paths is not None or mount_config is not None:
        entries = list(shell_paths or [])
    else:
        entries = list(global_paths)

    return minimize_paths(entries, kind, mount_point)


def is_absolute_for_kind(path: str, kind: ShellKind) -> bool:
    if kind is ShellKind.WINDOWS:
        return is_windows_path(path)
    if kind is ShellKind.MIXED:
        return path.startswith("/") or is_windows_path(path)
    if kind is ShellKind.WSL:
        return path.startswith("/") or bool(_WINDOWS_ABSOLUTE.match(path))
    return path.startswith("/")


def join_for_kind(
    base: str,
    target: str,
    kind: ShellKind,
    mount_point: str = DEFAULT_MOUNT_POINT,
) -> str:
    """Resolve ``target`` against ``base`` in the kind's dialect."""
    if is_absolute_for_kind(target, kind):
        return normalize_to_canonical_form(target, kind, mount_point)
    base = normalize_to_canonical_form(base, kind, mount_point)
    if kind is ShellKind.MIXED and "\\" not in target and _DRIVE_PATH.match(base):
        joined = posixpath.join(windows_to_mixed_form(base), target)
    elif is_windows_path(base):
        joined = ntpath.join(base, target.replace("/", "\\"))
    else:
        joined = posixpath.join(base, target)
    return normalize_to_canonical_form(joined, kind, mount_point)


def check_path_shape(path: str, kind: ShellKind, mount_point: str = DEFAULT_MOUNT_POINT) -> str:
    """Verify the path matches the kind's dialect.

    Returns:
        The path to canonicalize; WSL kind converts Windows paths to their
        mounted form first.

    Raises:
        InvalidPathFormatError: Shape does not match.
        PathConversionError: WSL kind was given a UNC path.
    """
    if kind is ShellKind.WINDOWS:
        if is_windows_path(path) or is_unc_path(path):
            return path
        raise InvalidPathFormatError(path, "Windows")

    if kind is ShellKind.MIXED:
        if _UNIX_SHAPE.match(path) or _WINDOWS_ABSOLUTE.match(path):
            return path
        raise InvalidPathFormatError(path, "Git Bash")

    if kind is ShellKind.WSL:
        if _WINDOWS_ABSOLUTE.match(path) or is_unc_path(path):
            return windows_to_mounted_form(path, mount_point)
        if _UNIX_SHAPE.match(path):
            return path
        raise InvalidPathFormatError(path, "WSL")

    if _UNIX_SHAPE.match(path):
        return path
    raise InvalidPathFormatError(path, "Unix")


def is_valid_path_shape(path: str, kind: ShellKind, mount_point: str = DEFAULT_MOUNT_POINT) -> bool:
    try:
        check_path_shape(path, kind, mount_point)
    except InvalidPathFormatError:
        return False
    return True


def validate_working_directory(
    path: str,
    context: ValidationContext,
    base_dir: str | None = None,
) -> str:
    """Validate a working directory for the context's shell.

    The shape check always applies. The allow-list check applies only when
    ``restrict_working_directory`` is enabled.

    Args:
        path: Requested directory.
        context: Validation context of the target shell.
        base_dir: Directory that relative paths are resolved against.

    Returns:
        The canonical directory for the shell.

    Raises:
        InvalidPathFormatError: Path does not match the shell's dialect.
        PathNotAllowedError: Path is outside the allowed paths.
    """
    path = path.strip()
    if not path:
        raise InvalidPathFormatError(path, context.kind.value)

    candidate = path
    if base_dir and not is_absolute_for_kind(path, context.kind) and not is_unc_path(path):
        candidate = join_for_kind(base_dir, path, context.kind, context.mount_point)

    shaped = check_path_shape(candidate, context.kind, context.mount_point)
    canonical = normalize_to_canonical_form(shaped, context.kind, context.mount_point)

    if not context.config.security.restrict_working_directory:
        return canonical

    allowed = context.config.paths.allowed_paths
    if not allowed:
        raise PathNotAllowedError(
            path,
            [],
            message=f"No allowed paths configured for {context.shell_name}",
        )
    if not is_path_allowed(canonical, allowed, context.kind, context.mount_point):
        logger.info(
            "working_directory_rejected",
            shell=context.shell_name,
            path=path,
            canonical=canonical,
        )
        raise PathNotAllowedError(path, list(allowed))
    return canonical
