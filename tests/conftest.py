# tests/conftest.py - v2
"""Shared test fixtures for all unit tests.

Provides a scripted FakeRunner standing in for node/npm, an npm install
simulator that edits package.json the way ``npm install --save`` does,
sample manifests and a small upgrade target. No test runs a real node/npm.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pytest

from ngupgrade.config.settings import Settings
from ngupgrade.config.targets import OptionalTool, UpgradeTarget
from ngupgrade.core.models import DependencyEntry
from ngupgrade.toolchain.runner import CommandResult

Effect = Callable[[tuple[str, ...], Path | None], None]


@dataclass
class _Rule:
    prefix: tuple[str, ...]
    exit_code: int = 0
    stdout: str = ""
    timed_out: bool = False
    not_found: bool = False
    effect: Effect | None = None


class FakeRunner:
    """CommandRunner double: answers by argv prefix, last matching rule wins."""

    def __init__(self, default_exit: int = 0) -> None:
        self.default_exit = default_exit
        self.calls: list[tuple[str, ...]] = []
        self._rules: list[_Rule] = []

    def on(self, *prefix: str, **kwargs: Any) -> FakeRunner:
        self._rules.append(_Rule(prefix=tuple(prefix), **kwargs))
        return self

    async def run(
        self,
        args: list[str],
        cwd: Path | None = None,
        timeout_s: float | None = None,
    ) -> CommandResult:
        argv = tuple(args)
        self.calls.append(argv)
        for rule in reversed(self._rules):
            if argv[: len(rule.prefix)] == rule.prefix:
                if rule.effect is not None:
                    rule.effect(argv, cwd)
                exit_code = rule.exit_code
                if rule.timed_out:
                    exit_code = 124
                if rule.not_found:
                    exit_code = 127
                return CommandResult(
                    args=argv,
                    exit_code=exit_code,
                    stdout=rule.stdout,
                    timed_out=rule.timed_out,
                    not_found=rule.not_found,
                )
        return CommandResult(args=argv, exit_code=self.default_exit)

    def installs(self) -> list[tuple[str, ...]]:
        """Calls of the form ``npm install <spec> ...`` (global installs excluded)."""
        return [c for c in self.calls if c[:2] == ("npm", "install") and "-g" not in c]

    def installed_specs(self) -> list[str]:
        return [c[2] for c in self.installs()]


def npm_install_effect(argv: tuple[str, ...], cwd: Path | None) -> None:
    """Mimic ``npm install name@spec --save[-dev] [--save-exact]`` on package.json."""
    if "-g" in argv:
        return
    assert cwd is not None
    spec = argv[2]
    name, _, version = spec.rpartition("@")
    section = "devDependencies" if "--save-dev" in argv else "dependencies"
    if "--save-exact" not in argv and version[:1].isdigit():
        version = f"^{version}"

    manifest_path = cwd / "package.json"
    data = json.loads(manifest_path.read_text(encoding="utf-8"))
    other = "dependencies" if section == "devDependencies" else "devDependencies"
    data.get(other, {}).pop(name, None)
    data.setdefault(section, {})[name] = version
    manifest_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")

    (cwd / "node_modules" / name).mkdir(parents=True, exist_ok=True)


# === FIXTURES: Runner ===


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Runner with a healthy Node 22 / npm 10 toolchain and ng present."""
    runner = FakeRunner()
    runner.on("node", "--version", stdout="v22.11.0\n")
    runner.on("npm", "--version", stdout="10.9.0\n")
    runner.on("ng", "version", stdout="Angular CLI: 20.0.0\n")
    return runner


@pytest.fixture
def npm_runner(fake_runner: FakeRunner) -> FakeRunner:
    """Healthy toolchain whose installs edit package.json and node_modules."""
    fake_runner.on("npm", "install", effect=npm_install_effect)
    return fake_runner


# === FIXTURES: Target and settings ===


@pytest.fixture
def small_target() -> UpgradeTarget:
    """Two runtime and one dev managed package, ng as optional tool."""
    return UpgradeTarget(
        name="angular-20",
        runtime_major=22,
        managed_dependencies=[
            DependencyEntry(name="@angular/core", version_spec="20.0.0"),
            DependencyEntry(name="rxjs", version_spec="7.8.2"),
        ],
        managed_dev_dependencies=[
            DependencyEntry(name="typescript", version_spec="5.8.3"),
        ],
        optional_tools=[
            OptionalTool(command="ng", package="@angular/cli", probe_args=["version"])
        ],
        auxiliary_package=DependencyEntry(name="ajv", version_spec="^8.17.1"),
        audit_level="high",
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, project_dir=tmp_path, command_timeout_s=30)


# === FIXTURES: Manifests ===


SAMPLE_MANIFEST: dict[str, Any] = {
    "name": "demo-app",
    "version": "0.3.1",
    "private": True,
    "scripts": {"start": "ng serve", "build": "ng build"},
    "engines": {"node": ">=18.0.0"},
    "dependencies": {
        "@angular/core": "^17.3.0",
        "lodash": "^4.17.0",
        "rxjs": "7.8.2",
    },
    "devDependencies": {
        "typescript": "~5.4.0",
        "karma": "~6.4.0",
    },
    "browserslist": ["last 2 Chrome versions"],
}


@pytest.fixture
def sample_manifest() -> dict[str, Any]:
    return json.loads(json.dumps(SAMPLE_MANIFEST))


@pytest.fixture
def manifest_file(tmp_path: Path, sample_manifest: dict[str, Any]) -> Path:
    """package.json with the sample manifest, 2-space indent, trailing newline."""
    path = tmp_path / "package.json"
    path.write_text(json.dumps(sample_manifest, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def runner_factory() -> type[FakeRunner]:
    """The FakeRunner class, for tests that script a runner from scratch."""
    return FakeRunner


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by setup_logging() so tests stay independent."""
    yield
    root = logging.getLogger("ngupgrade")
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
