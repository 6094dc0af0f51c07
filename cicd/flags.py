"""Command-line flag groups shared by the CI entry points.

Flags are registered on an :class:`argparse.ArgumentParser` in named groups.
After parsing, :class:`CommonFlags` and :class:`ItFlags` translate the values
into the Maven arguments forwarded to the build.
"""
from __future__ import annotations

from argparse import ArgumentParser, ArgumentTypeError, BooleanOptionalAction, Namespace, _ArgumentGroup
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from cicd.core.config_loader import load_config_file, normalize_string_list

ALL_MODULES = ("ALL", "DEFAULT")
LOG_LEVELS = ("error", "info", "debug")

# Shared backends provisioned once for the smoke test environment.
STATIC_ORACLE_HOST = "10.128.0.90"
STATIC_ORACLE_SYS_PASSWORD = "oracle"
CLOUD_PROXY_HOST = "10.128.0.34"
CLOUD_PROXY_MYSQL_PORT = 33134
CLOUD_PROXY_POSTGRES_PORT = 33136
CLOUD_PROXY_PASSWORD = "t3mpl4t3s"

_CONFIG_EXCLUDED_DESTS = {"help", "config"}


class FlagConfigError(ValueError):
    """Raised when a flag configuration file cannot be loaded or applied."""


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise ArgumentTypeError(f"invalid integer value: '{text}'") from exc
    if value < 0:
        raise ArgumentTypeError(f"must be zero or greater, got {value}")
    return value


def register_common_flags(parser: ArgumentParser) -> _ArgumentGroup:
    group = parser.add_argument_group("common", "Options shared by all CI commands")
    group.add_argument(
        "--modules-to-build",
        default="ALL",
        metavar="MODULES",
        help="Module group or comma-separated module paths to build (default: ALL)",
    )
    group.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML, JSON or YAML file providing flag defaults and module groups",
    )
    group.add_argument("--log-level", choices=LOG_LEVELS, default="info", help="Console verbosity (default: info)")
    group.add_argument("--dry-run", action="store_true", help="Print Maven commands without executing them")
    return group


def register_it_flags(parser: ArgumentParser) -> _ArgumentGroup:
    group = parser.add_argument_group("integration tests", "Options forwarded to the integration test run")
    group.add_argument("--it-region", default="", help="The GCP region to use for storing test artifacts")
    group.add_argument("--it-project", default="", help="The GCP project to run the integration tests in")
    group.add_argument("--it-artifact-bucket", default="", help="A GCP bucket to store test artifacts")
    group.add_argument(
        "--it-stage-bucket",
        default="",
        help="A GCP bucket to stage templates (defaults to the artifact bucket)",
    )
    group.add_argument("--it-private-connectivity", default="", help="A private connectivity endpoint")
    group.add_argument("--it-spanner-host", default="", help="A custom endpoint to override Spanner API requests")
    group.add_argument(
        "--it-release",
        action=BooleanOptionalAction,
        default=False,
        help="Set when tests run for a release; stops at the first failing test",
    )
    group.add_argument(
        "--it-retry-failures",
        type=_non_negative_int,
        default=0,
        metavar="COUNT",
        help="Number of retry attempts for failing tests (default: 0)",
    )
    return group


def load_flag_config(path: Path) -> Mapping[str, Any]:
    try:
        return load_config_file(path)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        raise FlagConfigError(f"Could not load configuration '{path}': {exc}") from exc


def _coerce_default(parser: ArgumentParser, dest: str, value: Any) -> Any:
    action = next(action for action in parser._actions if action.dest == dest)
    if action.nargs == 0:
        if not isinstance(value, bool):
            raise FlagConfigError(f"Flag '{dest}' expects a boolean, got {value!r}")
        return value
    if isinstance(value, (dict, list)):
        raise FlagConfigError(f"Flag '{dest}' expects a scalar value, got {value!r}")
    if action.type is not None:
        try:
            value = action.type(str(value))
        except (ArgumentTypeError, ValueError) as exc:
            raise FlagConfigError(f"Invalid value for flag '{dest}': {exc}") from exc
    elif not isinstance(value, str):
        value = str(value)
    if action.choices is not None and value not in action.choices:
        choices = ", ".join(map(str, action.choices))
        raise FlagConfigError(f"Invalid value for flag '{dest}': {value!r} (choose from {choices})")
    return value


def apply_config_defaults(parser: ArgumentParser, config: Mapping[str, Any]) -> None:
    """Use the ``flags`` table of ``config`` as parser defaults.

    Keys may be written with dashes or underscores. Explicit command-line
    values still take precedence.
    """

    table = config.get("flags") or {}
    if not isinstance(table, Mapping):
        raise FlagConfigError("'flags' must be a table of flag names to values")

    known = {action.dest for action in parser._actions} - _CONFIG_EXCLUDED_DESTS
    defaults: Dict[str, Any] = {}
    for key, value in table.items():
        dest = str(key).lstrip("-").replace("-", "_")
        if dest not in known:
            raise FlagConfigError(f"Unknown flag '{key}' in configuration")
        defaults[dest] = _coerce_default(parser, dest, value)
    parser.set_defaults(**defaults)


def load_module_groups(config: Mapping[str, Any]) -> Dict[str, List[str]]:
    table = config.get("module_groups") or {}
    if not isinstance(table, Mapping):
        raise FlagConfigError("'module_groups' must be a table of group names to module lists")

    groups: Dict[str, List[str]] = {}
    for name, modules in table.items():
        key = str(name).strip().upper()
        if key in ALL_MODULES:
            raise FlagConfigError(f"Module group '{name}' is reserved")
        try:
            groups[key] = normalize_string_list(modules, field_name=f"module_groups.{name}")
        except TypeError as exc:
            raise FlagConfigError(str(exc)) from exc
    return groups


def resolve_modules(selection: str, groups: Mapping[str, List[str]] | None = None) -> List[str]:
    """Return the Maven modules selected by ``--modules-to-build``.

    ``groups`` holds the module groups read from the configuration file;
    there are no built-in groups. An empty list means the whole reactor.
    """

    key = selection.strip()
    if not key or key.upper() in ALL_MODULES:
        return []
    if groups and key.upper() in groups:
        return list(groups[key.upper()])
    return normalize_string_list(key)


@dataclass
class CommonFlags:
    modules_to_build: str = "ALL"
    log_level: str = "info"
    dry_run: bool = False
    module_groups: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_namespace(cls, args: Namespace, *, module_groups: Mapping[str, List[str]] | None = None) -> "CommonFlags":
        return cls(
            modules_to_build=args.modules_to_build,
            log_level=args.log_level,
            dry_run=args.dry_run,
            module_groups=dict(module_groups or {}),
        )

    def modules(self) -> List[str]:
        return resolve_modules(self.modules_to_build, self.module_groups)


@dataclass
class ItFlags:
    """Integration test flag values and their Maven translations."""

    it_region: str = ""
    it_project: str = ""
    it_artifact_bucket: str = ""
    it_stage_bucket: str = ""
    it_private_connectivity: str = ""
    it_spanner_host: str = ""
    it_release: bool = False
    it_retry_failures: int = 0

    @classmethod
    def from_namespace(cls, args: Namespace) -> "ItFlags":
        return cls(
            it_region=args.it_region,
            it_project=args.it_project,
            it_artifact_bucket=args.it_artifact_bucket,
            it_stage_bucket=args.it_stage_bucket,
            it_private_connectivity=args.it_private_connectivity,
            it_spanner_host=args.it_spanner_host,
            it_release=args.it_release,
            it_retry_failures=args.it_retry_failures,
        )

    def region(self) -> str:
        return f"-Dregion={self.it_region}"

    def project(self) -> str:
        return f"-Dproject={self.it_project}"

    def artifact_bucket(self) -> str:
        return f"-DartifactBucket={self.it_artifact_bucket}"

    def stage_bucket(self) -> str:
        return f"-DstageBucket={self.it_stage_bucket or self.it_artifact_bucket}"

    def private_connectivity(self) -> str:
        if not self.it_private_connectivity:
            return ""
        return f"-DprivateConnectivity={self.it_private_connectivity}"

    def spanner_host(self) -> str:
        if not self.it_spanner_host:
            return ""
        return f"-DspannerHost={self.it_spanner_host}"

    def failure_mode(self) -> str:
        # Releases stop at the first failure, other runs report every failure.
        if self.it_release:
            return "-Dsurefire.skipAfterFailureCount=1"
        return "-fae"

    def retry_failures(self) -> str:
        return f"-Dsurefire.rerunFailingTestsCount={self.it_retry_failures}"

    def static_oracle_host(self) -> str:
        return f"-DcloudOracleHost={STATIC_ORACLE_HOST}"

    def static_oracle_sys_password(self) -> str:
        return f"-DcloudOracleSysPassword={STATIC_ORACLE_SYS_PASSWORD}"

    def cloud_proxy_host(self) -> str:
        return f"-DcloudProxyHost={CLOUD_PROXY_HOST}"

    def cloud_proxy_mysql_port(self) -> str:
        return f"-DcloudProxyMySqlPort={CLOUD_PROXY_MYSQL_PORT}"

    def cloud_proxy_postgres_port(self) -> str:
        return f"-DcloudProxyPostgresPort={CLOUD_PROXY_POSTGRES_PORT}"

    def cloud_proxy_password(self) -> str:
        return f"-DcloudProxyPassword={CLOUD_PROXY_PASSWORD}"


__all__ = [
    "ALL_MODULES",
    "CommonFlags",
    "FlagConfigError",
    "ItFlags",
    "LOG_LEVELS",
    "apply_config_defaults",
    "load_flag_config",
    "load_module_groups",
    "register_common_flags",
    "register_it_flags",
    "resolve_modules",
]
