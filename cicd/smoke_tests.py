"""Build the repository, then run the integration smoke tests against it."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping
import sys

from cicd.core.command_runner import CommandRunner, RecordingCommandRunner, SubprocessCommandRunner
from cicd.core.console import Console

from .flags import (
    CommonFlags,
    FlagConfigError,
    ItFlags,
    apply_config_defaults,
    load_flag_config,
    load_module_groups,
    register_common_flags,
    register_it_flags,
)
from .maven import MavenError, MavenFlags, mvn_clean_install, mvn_verify

BUILD_THREADS = 8
IT_PARALLELISM = 4
STATIC_INSTANCE = "teleport"
SUCCESS_MESSAGE = "Build Successful!"


def install_args(mvn: MavenFlags) -> List[str]:
    """Options for the ``clean install`` run; tests are never executed here."""

    return [
        mvn.include_dependencies(),
        mvn.skip_dependency_analysis(),
        mvn.skip_checkstyle(),
        mvn.skip_jib(),
        mvn.skip_tests(),
        mvn.skip_jacoco(),
        mvn.skip_shade(),
        mvn.thread_count(BUILD_THREADS),
        mvn.internal_maven(),
    ]


def verify_args(mvn: MavenFlags, it: ItFlags) -> List[str]:
    """Options for the ``verify`` run that executes the smoke tests."""

    return [
        mvn.include_dependencies(),
        mvn.skip_dependency_analysis(),
        mvn.skip_checkstyle(),
        mvn.skip_jib(),
        mvn.run_integration_smoke_tests(),
        mvn.thread_count(BUILD_THREADS),
        mvn.integration_test_parallelism(IT_PARALLELISM),
        mvn.static_bigtable_instance(STATIC_INSTANCE),
        mvn.static_spanner_instance(STATIC_INSTANCE),
        mvn.internal_maven(),
        it.region(),
        it.project(),
        it.artifact_bucket(),
        it.stage_bucket(),
        it.private_connectivity(),
        it.spanner_host(),
        it.failure_mode(),
        it.retry_failures(),
        it.static_oracle_host(),
        it.static_oracle_sys_password(),
        it.cloud_proxy_host(),
        it.cloud_proxy_mysql_port(),
        it.cloud_proxy_postgres_port(),
        it.cloud_proxy_password(),
    ]


def run_smoke_tests(
    common: CommonFlags,
    it: ItFlags,
    *,
    runner: CommandRunner,
    console: Console,
    workspace: Path | None = None,
) -> None:
    """Run ``mvn clean install`` followed by ``mvn verify``.

    Raises :class:`MavenError` on the first failing step; the verify step is
    not attempted when the install fails.
    """

    modules = common.modules()
    if modules:
        console.debug(f"Restricting build to modules: {', '.join(modules)}")
    else:
        console.debug("Building all modules")

    mvn_clean_install().run(
        *install_args(MavenFlags()),
        runner=runner,
        console=console,
        modules=modules,
        cwd=workspace,
    )
    mvn_verify().run(
        *verify_args(MavenFlags(), it),
        runner=runner,
        console=console,
        modules=modules,
        cwd=workspace,
    )


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="run-it-smoke-tests",
        description="Install all modules, then run the integration smoke tests",
    )
    register_common_flags(parser)
    register_it_flags(parser)
    return parser


def _load_config(argv: List[str]) -> Mapping[str, Any]:
    pre_parser = ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", type=Path, default=None)
    known, _ = pre_parser.parse_known_args(argv)
    if known.config is None:
        return {}
    return load_flag_config(known.config)


def parse_arguments(argv: Iterable[str]) -> tuple[Namespace, Dict[str, List[str]]]:
    """Parse ``argv`` with configuration-file values applied as defaults.

    Raises :class:`FlagConfigError` for an unusable configuration file;
    invalid flags exit through :meth:`ArgumentParser.error`.
    """

    args_list = list(argv)
    config = _load_config(args_list)
    parser = build_parser()
    apply_config_defaults(parser, config)
    module_groups = load_module_groups(config)
    return parser.parse_args(args_list), module_groups


def _emit_dry_run_output(runner: RecordingCommandRunner, *, workspace: Path) -> None:
    for line in runner.iter_formatted(workspace=workspace):
        print(line)


def main(argv: Iterable[str] | None = None, *, runner: CommandRunner | None = None) -> int:
    args_list = list(sys.argv[1:] if argv is None else argv)
    try:
        args, module_groups = parse_arguments(args_list)
    except FlagConfigError as exc:
        Console().fatal(str(exc))
        return 1

    common = CommonFlags.from_namespace(args, module_groups=module_groups)
    it = ItFlags.from_namespace(args)
    console = Console(common.log_level)
    workspace = Path.cwd()

    if runner is None:
        runner = RecordingCommandRunner() if common.dry_run else SubprocessCommandRunner()

    try:
        run_smoke_tests(common, it, runner=runner, console=console, workspace=workspace)
    except MavenError as exc:
        console.error(str(exc.cause))
        console.fatal(f"mvn {' '.join(exc.goals)} failed")
        return 1

    if common.dry_run and isinstance(runner, RecordingCommandRunner):
        _emit_dry_run_output(runner, workspace=workspace)
    console.success(SUCCESS_MESSAGE)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
