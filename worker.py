"""
Alchemy Worker - Worker functions and registry.

A worker is a named, described bundle of callable functions. Functions are
registered explicitly in a FunctionRegistry at startup; nothing is discovered
by introspection.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from config import get_logger

logger = get_logger(__name__)

# Log sink handed to every function call; receives human-readable lines
LogSink = Callable[[str], None]


class FunctionStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class FunctionResult:
    """Outcome of one function call: status plus human-readable feedback."""

    status: FunctionStatus
    feedback: str

    @classmethod
    def done(cls, feedback: str) -> "FunctionResult":
        return cls(FunctionStatus.DONE, feedback)

    @classmethod
    def failed(cls, feedback: str) -> "FunctionResult":
        return cls(FunctionStatus.FAILED, feedback)

    @property
    def ok(self) -> bool:
        return self.status is FunctionStatus.DONE

    def to_dict(self) -> dict:
        return {"status": self.status.value, "feedback": self.feedback}


@dataclass(frozen=True)
class FunctionArg:
    name: str
    description: str
    type: str = "string"
    optional: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "optional": self.optional,
        }


def _discard(_line: str) -> None:
    pass


@dataclass
class WorkerFunction:
    """A callable unit: name, description, declared args and the handler itself."""

    name: str
    description: str
    args: tuple[FunctionArg, ...]
    executable: Callable[[dict, LogSink], FunctionResult]

    def execute(self, args: dict | None, log: LogSink | None = None) -> FunctionResult:
        """
        Run the handler with the given raw arguments.

        Unexpected exceptions from the handler become a Failed result so the
        host always gets a status/feedback pair back.
        """
        try:
            return self.executable(dict(args or {}), log or _discard)
        except Exception as e:
            logger.exception("Function %s raised: %s", self.name, e)
            return FunctionResult.failed(f"Function {self.name} failed: {e}")

    def schema(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "args": [arg.to_dict() for arg in self.args],
        }


@dataclass
class Worker:
    id: str
    name: str
    description: str
    functions: list[WorkerFunction] = field(default_factory=list)
    get_environment: Callable[[], dict[str, Any]] | None = None

    def get_function(self, name: str) -> WorkerFunction:
        for fn in self.functions:
            if fn.name == name:
                return fn
        raise KeyError(name)

    def environment(self) -> dict[str, Any]:
        """Environment snapshot supplied by the host, or {} when none was given."""
        if self.get_environment is None:
            return {}
        return dict(self.get_environment() or {})

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "functions": [fn.schema() for fn in self.functions],
        }


class FunctionRegistry:
    """Explicit name -> WorkerFunction mapping, filled once at startup."""

    def __init__(self):
        self._functions: dict[str, WorkerFunction] = {}
        self._workers: list[Worker] = []

    def register(self, fn: WorkerFunction) -> WorkerFunction:
        if fn.name in self._functions:
            raise ValueError(f"Function already registered: {fn.name}")
        self._functions[fn.name] = fn
        logger.debug("Registered function %s", fn.name)
        return fn

    def register_worker(self, worker: Worker) -> Worker:
        for fn in worker.functions:
            self.register(fn)
        self._workers.append(worker)
        logger.info("Registered worker %s (%d functions)", worker.id, len(worker.functions))
        return worker

    def get(self, name: str) -> WorkerFunction:
        try:
            return self._functions[name]
        except KeyError:
            raise KeyError(f"Unknown function: {name}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def names(self) -> list[str]:
        return sorted(self._functions)

    def invoke(self, name: str, args: dict | None, log: LogSink | None = None) -> FunctionResult:
        return self.get(name).execute(args, log)

    def manifest(self) -> dict:
        return {
            "workers": [w.to_dict() for w in self._workers],
            "functions": [self._functions[n].schema() for n in self.names()],
        }
