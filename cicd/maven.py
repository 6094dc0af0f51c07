"""Maven option vocabulary and the workflows driven by the CI entry points."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

from cicd.core.command_runner import CommandError, CommandResult, CommandRunner
from cicd.core.console import Console

MAVEN_EXECUTABLE = "mvn"
CLEAN_INSTALL_GOALS = ("clean", "install")
VERIFY_GOALS = ("verify",)


class MavenError(RuntimeError):
    """Raised when a Maven invocation fails or cannot be started."""

    def __init__(self, goals: Sequence[str], cause: Exception):
        super().__init__(f"mvn {' '.join(goals)} failed: {cause}")
        self.goals = tuple(goals)
        self.cause = cause


class MavenFlags:
    """Maven command-line options used by the workflows.

    Every method returns a single argument string so option lists read as a
    sequence of calls.
    """

    def include_dependencies(self) -> str:
        return "-am"

    def skip_dependency_analysis(self) -> str:
        return "-Dmdep.analyze.skip"

    def skip_checkstyle(self) -> str:
        return "-Dcheckstyle.skip"

    def skip_jib(self) -> str:
        return "-Djib.skip"

    def skip_tests(self) -> str:
        return "-Dmaven.test.skip"

    def skip_jacoco(self) -> str:
        return "-Djacoco.skip"

    def skip_shade(self) -> str:
        return "-DskipShade"

    def run_integration_smoke_tests(self) -> str:
        return "-PtemplatesIntegrationSmokeTests"

    def thread_count(self, count: int) -> str:
        return f"-T{count}"

    def integration_test_parallelism(self, count: int) -> str:
        return f"-DitParallelism={count}"

    def static_bigtable_instance(self, instance_id: str) -> str:
        return f"-DbigtableInstanceId={instance_id}"

    def static_spanner_instance(self, instance_id: str) -> str:
        return f"-DspannerInstanceId={instance_id}"

    def internal_maven(self) -> str:
        return "--settings=.mvn/settings.xml"


class MavenWorkflow:
    """A Maven invocation for a fixed list of goals."""

    def __init__(self, goals: Sequence[str], *, executable: str = MAVEN_EXECUTABLE):
        if not goals:
            raise ValueError("A Maven workflow needs at least one goal")
        self.goals = tuple(goals)
        self.executable = executable

    def command(self, args: Iterable[str], *, modules: Sequence[str] = ()) -> List[str]:
        command = [self.executable, "-B", *self.goals]
        if modules:
            command.extend(["-pl", ",".join(modules)])
        command.extend(arg for arg in args if arg)
        return command

    def run(
        self,
        *args: str,
        runner: CommandRunner,
        console: Console | None = None,
        modules: Sequence[str] = (),
        cwd: Path | None = None,
    ) -> CommandResult:
        command = self.command(args, modules=modules)
        if console is not None:
            console.info(f"Running {runner.format_command(command)}")
        try:
            return runner.run(command, cwd=cwd, note=f"mvn {' '.join(self.goals)}")
        except (CommandError, OSError) as exc:
            raise MavenError(self.goals, exc) from exc


def mvn_clean_install() -> MavenWorkflow:
    return MavenWorkflow(CLEAN_INSTALL_GOALS)


def mvn_verify() -> MavenWorkflow:
    return MavenWorkflow(VERIFY_GOALS)


__all__ = [
    "CLEAN_INSTALL_GOALS",
    "MAVEN_EXECUTABLE",
    "MavenError",
    "MavenFlags",
    "MavenWorkflow",
    "VERIFY_GOALS",
    "mvn_clean_install",
    "mvn_verify",
]
