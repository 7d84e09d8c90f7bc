from __future__ import annotations

import pytest

from xcdeploy.core.executor import CommandExecutor
from xcdeploy.core.model import CommandOutput, Installation


def out(stdout: str = "", stderr: str = "") -> CommandOutput:
    return CommandOutput(stdout=stdout, stderr=stderr)


class FakeExecutor:
    """Answers commands by substring; the first registered matching fragment wins.

    A fragment registered with several results hands them out in order and
    keeps repeating the last one.
    """

    def __init__(self) -> None:
        self._rules: list[tuple[str, list[CommandOutput | Exception]]] = []
        self.calls: list[tuple[str, str | None, float | None]] = []

    def on(self, fragment: str, *results: CommandOutput | Exception) -> FakeExecutor:
        self._rules.append((fragment, list(results)))
        return self

    def count(self, fragment: str) -> int:
        return sum(1 for command, _, _ in self.calls if fragment in command)

    def commands(self, fragment: str = "") -> list[str]:
        return [command for command, _, _ in self.calls if fragment in command]

    async def execute(
        self,
        command: str,
        working_dir: str | None = None,
        timeout_s: float | None = None,
    ) -> CommandOutput:
        self.calls.append((command, working_dir, timeout_s))
        for fragment, results in self._rules:
            if fragment in command:
                result = results.pop(0) if len(results) > 1 else results[0]
                if isinstance(result, Exception):
                    raise result
                return result
        raise AssertionError(f"Unexpected cmd: {command}")


class ConsoleRunner:
    """Runs a real shell command in place of the device console, fakes the rest."""

    def __init__(self, fake: FakeExecutor, console_command: str) -> None:
        self.fake = fake
        self.console_command = console_command
        self.real = CommandExecutor()

    async def execute(
        self,
        command: str,
        working_dir: str | None = None,
        timeout_s: float | None = None,
    ) -> CommandOutput:
        if "--console" in command:
            return await self.real.execute(self.console_command, timeout_s=timeout_s)
        return await self.fake.execute(command, working_dir, timeout_s)


class FakeToolPaths:
    def __init__(self, path: str = "/Xcode.app/Contents/Developer/usr/bin/devicectl") -> None:
        self.path = path
        self.requests: list[Installation | None] = []

    async def resolve(self, installation: Installation | None = None) -> str:
        self.requests.append(installation)
        return self.path


class FakeLocator:
    def __init__(self, installations: list[Installation]) -> None:
        self.installations = installations

    async def list_installations(self) -> list[Installation]:
        return list(self.installations)


XCTRACE_OUTPUT = """== Devices ==
Build Mac (0000FE00-1111-2222-3333-444455556666)
Jane's iPhone (17.5) (AAAAAAAA-BBBB-CCCC-DDDD-EEEEEEEEEEEE)

== Simulators ==
iPhone 15 Simulator (17.5) (ABCDEF01-2345-6789-ABCD-EF0123456789)
"""

DEVICECTL_OUTPUT = """Devices:
Name            Hostname                        Identifier                  State                Model
-------------   -----------------------------   -------------------------   ------------------   --------------------------
Jane's iPhone   Janes-iPhone.coredevice.local   00008110-001234567890ABCD   available (paired)   iPhone 13 Pro (iPhone14,2)
"""


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()
