from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Optional, Protocol, TextIO


class PromptIO(Protocol):
    def print(self, text: str = "") -> None: ...

    def input(self, prompt: str = "") -> str: ...


class ConsolePromptIO:
    """Terminal prompts. A closed input stream answers ``eof_answer``."""

    def __init__(
        self,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        *,
        eof_answer: str = "q",
    ) -> None:
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.eof_answer = eof_answer

    def print(self, text: str = "") -> None:
        self.stdout.write(f"{text}\n")

    def input(self, prompt: str = "") -> str:
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return self.eof_answer
        return line.rstrip("\r\n")


@dataclass(slots=True)
class BufferPromptIO:
    """Scripted answers in, captured text out."""

    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    exhausted_answer: Optional[str] = None

    def print(self, text: str = "") -> None:
        self.outputs.append(text)

    def input(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if self.inputs:
            return self.inputs.pop(0)
        if self.exhausted_answer is not None:
            return self.exhausted_answer
        raise AssertionError(f"no scripted answer left for prompt {prompt!r}")

    @property
    def transcript(self) -> str:
        return "\n".join(self.outputs)
