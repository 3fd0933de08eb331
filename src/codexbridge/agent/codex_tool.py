"""Codex tool — runs ``codex exec --json`` as a cancellable streaming subprocess.

One :class:`CodexRun` owns one subprocess.  Four things can end it: stdout
closing after a clean exit, a non-zero exit, a cancellation request, or
the process failing to start.  They race; the first one to reach
:meth:`CodexRun._settle` wins, and the ``RunState`` transition inside it
makes every later attempt a no-op.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import os
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from codexbridge.agent.errors import translate_spawn_error
from codexbridge.agent.outcome import (
    Aborted,
    CodexToolResult,
    build_result,
    progress_result,
    synthesize_outcome,
)
from codexbridge.cancellation import CancellationToken
from codexbridge.config.models import CodexConfig, SandboxMode
from codexbridge.constants import CODEX_EXECUTABLE, UpdateCallback
from codexbridge.stream.classifier import MAX_LINE_BYTES, EventClassifier, OperationState
from codexbridge.stream.lines import LineReassembler

logger = logging.getLogger(__name__)

#: Env vars stripped from the Codex subprocess so it uses its own login.
_STRIPPED_ENV_KEYS = {"ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GOOGLE_API_KEY"}

#: Bytes requested per stdout/stderr read.
_READ_CHUNK = 65_536


class CodexParams(BaseModel):
    """Parameters of one Codex invocation.  Immutable once validated."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    prompt: str = Field(
        min_length=1,
        description="Task for Codex to execute. Be specific about what you want done.",
    )
    model: str | None = Field(
        default=None,
        description="Model override (e.g. 'o3', 'o4-mini'). Uses Codex default if not set.",
    )
    sandbox: SandboxMode | None = Field(
        default=None,
        description=(
            "Sandbox mode. 'read-only' for exploration, "
            "'workspace-write' to allow file modifications."
        ),
    )
    work_dir: str | None = Field(
        default=None,
        validation_alias=AliasChoices("work_dir", "workDir"),
        description="Working directory for Codex. Defaults to the current directory.",
    )

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "prompt must not be blank"
            raise ValueError(msg)
        return value


def build_codex_args(
    params: CodexParams,
    executable: str = CODEX_EXECUTABLE,
    default_sandbox: SandboxMode = SandboxMode.READ_ONLY,
) -> list[str]:
    """Command line for ``codex exec --json``.

    ``workspace-write`` also passes ``--full-auto`` so Codex does not stop
    for approvals it cannot receive; everything else runs read-only.
    """
    args = [executable, "exec", "--json"]

    sandbox = params.sandbox or default_sandbox
    if sandbox is SandboxMode.WORKSPACE_WRITE:
        args.extend(["--full-auto", "-s", SandboxMode.WORKSPACE_WRITE.value])
    else:
        args.extend(["-s", SandboxMode.READ_ONLY.value])

    if params.model:
        args.extend(["-m", params.model])

    args.append(params.prompt)
    return args


def build_codex_env(strip_api_keys: bool = True) -> dict[str, str]:
    """Environment for the subprocess."""
    if not strip_api_keys:
        return dict(os.environ)
    return {k: v for k, v in os.environ.items() if k not in _STRIPPED_ENV_KEYS}


class RunState(Enum):
    IDLE = "idle"
    SPAWNING = "spawning"
    RUNNING = "running"
    SETTLED = "settled"


class CodexRun:
    """A single Codex invocation, from spawn to settlement.

    ``run()`` may be awaited once.  It returns the final
    :class:`CodexToolResult` or raises a
    :class:`~codexbridge.agent.errors.CodexSpawnError`.
    """

    def __init__(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        cancel: CancellationToken | None = None,
        on_update: UpdateCallback | None = None,
        kill_grace_seconds: float = 2.0,
        max_line_bytes: int = MAX_LINE_BYTES,
        label: str = "codex",
    ) -> None:
        self._args = args
        self._cwd = cwd
        self._env = env
        self._cancel = cancel
        self._on_update = on_update
        self._kill_grace = kill_grace_seconds
        self._label = label

        self.state = OperationState()
        self._classifier = EventClassifier(self.state, max_line_bytes, label)
        self._reassembler = LineReassembler()
        self._stderr_chunks: list[bytes] = []

        self._run_state = RunState.IDLE
        self._loop: asyncio.AbstractEventLoop | None = None
        self._result: asyncio.Future[CodexToolResult] | None = None
        self._proc: asyncio.subprocess.Process | None = None
        self._remove_listener: Callable[[], None] | None = None
        self._cancel_requested = False

        self._stdout_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._exit_task: asyncio.Task[None] | None = None
        self._terminate_task: asyncio.Task[None] | None = None

    @property
    def run_state(self) -> RunState:
        return self._run_state

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    # ------------------------------------------------------------------ #
    # State machine
    # ------------------------------------------------------------------ #

    def _transition(self, *expected: RunState, to: RunState) -> bool:
        """Move to *to* if the current state is one of *expected*."""
        if self._run_state not in expected:
            return False
        logger.debug("%s: %s -> %s", self._label, self._run_state.value, to.value)
        self._run_state = to
        return True

    def _settle(
        self,
        result: CodexToolResult | None = None,
        error: BaseException | None = None,
    ) -> bool:
        """The only way into ``SETTLED``.  Returns False if already settled.

        With neither *result* nor *error* the pending future is cancelled
        (the awaiting host task went away).
        """
        if not self._transition(RunState.SPAWNING, RunState.RUNNING, to=RunState.SETTLED):
            return False

        self.state.streaming = False
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None

        future = self._result
        if future is None:
            msg = f"{self._label}: settled without a pending result"
            raise RuntimeError(msg)
        if error is not None:
            future.set_exception(error)
        elif result is not None:
            future.set_result(result)
        else:
            future.cancel()
        return True

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    async def run(self) -> CodexToolResult:
        if self._run_state is not RunState.IDLE:
            msg = f"{self._label}: run() can only be awaited once"
            raise RuntimeError(msg)

        if self._cancel is not None and self._cancel.cancelled:
            self._transition(RunState.IDLE, to=RunState.SETTLED)
            self.state.streaming = False
            logger.info("%s: cancelled before start, not spawning", self._label)
            return build_result(Aborted(before_start=True), self.state)

        self._transition(RunState.IDLE, to=RunState.SPAWNING)
        self._loop = asyncio.get_running_loop()
        self._result = self._loop.create_future()
        if self._cancel is not None:
            self._remove_listener = self._cancel.add_listener(self._on_cancel)

        try:
            await self._spawn()
            return await self._result
        except asyncio.CancelledError:
            if self._settle():
                self._kill_now()
            raise
        finally:
            await self._cleanup()

    async def _spawn(self) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
                env=self._env,
                start_new_session=True,
            )
        except OSError as exc:
            error = translate_spawn_error(exc)
            error.__cause__ = exc
            logger.error("%s: %s", self._label, error)
            self._settle(error=error)
            return

        self._proc = proc
        if not self._transition(RunState.SPAWNING, to=RunState.RUNNING):
            self._kill_now()
            return
        logger.info("%s: spawned pid %d", self._label, proc.pid)

        self._stdout_task = asyncio.create_task(self._pump_stdout(proc))
        self._stderr_task = asyncio.create_task(self._pump_stderr(proc))
        self._exit_task = asyncio.create_task(self._watch_exit(proc))

        if self._cancel_requested:
            self._start_termination()

    # ------------------------------------------------------------------ #
    # Completion sources
    # ------------------------------------------------------------------ #

    async def _pump_stdout(self, proc: asyncio.subprocess.Process) -> None:
        if proc.stdout is None:
            return
        try:
            while True:
                chunk = await proc.stdout.read(_READ_CHUNK)
                if not chunk:
                    break
                for line in self._reassembler.feed(chunk):
                    await self._handle_line(line)
            for line in self._reassembler.flush():
                await self._handle_line(line)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("%s: error reading Codex stdout: %s", self._label, exc)

    async def _pump_stderr(self, proc: asyncio.subprocess.Process) -> None:
        if proc.stderr is None:
            return
        try:
            while True:
                chunk = await proc.stderr.read(_READ_CHUNK)
                if not chunk:
                    break
                self._stderr_chunks.append(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("%s: error reading Codex stderr: %s", self._label, exc)

    async def _handle_line(self, line: str) -> None:
        event = self._classifier.classify(line)
        if event is None or self._on_update is None:
            return
        if self._run_state is RunState.SETTLED:
            return
        try:
            pending = self._on_update(progress_result(event, self.state))
            if inspect.isawaitable(pending):
                await pending
        except Exception:
            logger.exception("%s: progress callback failed", self._label)

    async def _watch_exit(self, proc: asyncio.subprocess.Process) -> None:
        returncode = await proc.wait()
        logger.info("%s: pid %d exited with code %d", self._label, proc.pid, returncode)

        # Drain buffered output before deciding the outcome.
        pumps = [t for t in (self._stdout_task, self._stderr_task) if t is not None]
        await asyncio.gather(*pumps)

        outcome = synthesize_outcome(
            self.state,
            returncode,
            self._stderr_text(),
            cancelled=self._cancel_requested,
        )
        self._settle(result=build_result(outcome, self.state))

    def _on_cancel(self) -> None:
        """Cancellation listener.  A cancel during spawn is applied after it."""
        self._cancel_requested = True
        if self._run_state is RunState.RUNNING:
            self._start_termination()

    def _start_termination(self) -> None:
        if self._terminate_task is not None or self._loop is None:
            return
        self._terminate_task = self._loop.create_task(self._terminate())

    async def _terminate(self) -> None:
        """SIGTERM, then SIGKILL if the run has not settled within the grace period."""
        proc = self._proc
        if proc is None or self._result is None:
            return

        logger.info("%s: cancelling, sending SIGTERM to pid %d", self._label, proc.pid)
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()

        try:
            await asyncio.wait_for(asyncio.shield(self._result), timeout=self._kill_grace)
            return
        except TimeoutError:
            pass

        logger.warning(
            "%s: pid %d still running %.1fs after SIGTERM, sending SIGKILL",
            self._label,
            proc.pid,
            self._kill_grace,
        )
        with contextlib.suppress(ProcessLookupError):
            proc.kill()

        outcome = synthesize_outcome(
            self.state, proc.returncode, self._stderr_text(), cancelled=True
        )
        self._settle(result=build_result(outcome, self.state))

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _stderr_text(self) -> str:
        return b"".join(self._stderr_chunks).decode(errors="replace").strip()

    def _kill_now(self) -> None:
        proc = self._proc
        if proc is not None and proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()

    async def _cleanup(self) -> None:
        tasks = [
            t
            for t in (
                self._stdout_task,
                self._stderr_task,
                self._exit_task,
                self._terminate_task,
            )
            if t is not None and not t.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class CodexTool:
    """Host-facing tool that delegates a task to the Codex CLI.

    Authentication is left to the Codex CLI itself (``codex login``).
    """

    name = "codex"
    label = "Codex"
    description = (
        "Invoke OpenAI Codex CLI to execute a task. Codex can read files and run "
        "commands. Use this for tasks where Codex's capabilities complement the "
        "current model (e.g., specialized code generation, alternative perspective). "
        "By default, Codex runs in read-only mode. Set sandbox to 'workspace-write' "
        "to allow file modifications."
    )

    def __init__(self, config: CodexConfig | None = None, cwd: str | None = None) -> None:
        self._config = config or CodexConfig()
        self._cwd = cwd

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON schema of :class:`CodexParams`."""
        return CodexParams.model_json_schema()

    async def execute(
        self,
        tool_call_id: str,
        params: CodexParams | dict[str, Any],
        cancel: CancellationToken | None = None,
        on_update: UpdateCallback | None = None,
    ) -> CodexToolResult:
        """Run Codex for *params* and return its final result.

        Raises:
            pydantic.ValidationError: If *params* is not a valid request.
            CodexSpawnError: If the Codex process could not be started.
        """
        if not isinstance(params, CodexParams):
            params = CodexParams.model_validate(params)

        config = self._config
        run = CodexRun(
            build_codex_args(params, config.executable, config.default_sandbox),
            cwd=params.work_dir or config.work_dir or self._cwd,
            env=build_codex_env(config.strip_api_keys),
            cancel=cancel,
            on_update=on_update,
            kill_grace_seconds=config.kill_grace_seconds,
            max_line_bytes=config.max_line_bytes,
            label=f"codex[{tool_call_id}]",
        )
        return await run.run()
