"""Agent backend speaking newline-delimited JSON over a child process's stdio.

Wire format (one JSON object per line):

    stdin  <- {"type": "session.configure", "model", "workingDirectory", "systemPrompt"}
              {"type": "user.message", "id", "prompt"}
              {"type": "abort"}
    stdout -> {"type": "<event type>", "data": {...}}

Any process exit that was not requested through destroy() is reported to
subscribers as a session.error with errorType "crash".
"""

import asyncio
import json
import os
import shutil
import uuid
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Sequence, Set

from loguru import logger

from agentrelay.constants import Timeouts
from agentrelay.core.enums import ErrorKind, SessionEventType
from agentrelay.core.exceptions import BackendCrashError, InitializationError, SessionError

from .backend import AgentBackend, BackendSession
from .events import SessionEvent

STREAM_LIMIT_BYTES = 16 * 1024 * 1024
STDERR_TAIL_LINES = 5


class JsonlProcessSession(BackendSession):
    """Session bound to one agent child process."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        session_id: str,
        label: str = "agent",
        on_close: Optional[Callable[["JsonlProcessSession"], None]] = None,
    ):
        super().__init__(session_id)
        self._process = process
        self._label = label
        self._on_close = on_close
        self._closed = False
        self._stderr_tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._tasks: List[asyncio.Task] = []
        self._stderr_task: Optional[asyncio.Task] = None

    @property
    def returncode(self) -> Optional[int]:
        """Exit code, or None while the process runs."""
        return self._process.returncode

    def start_reading(self) -> None:
        """Start the stdout/stderr reader tasks."""
        loop = asyncio.get_running_loop()
        self._tasks.append(loop.create_task(self._read_stdout()))
        if self._process.stderr is not None:
            self._stderr_task = loop.create_task(self._read_stderr())
            self._tasks.append(self._stderr_task)

    async def _read_stdout(self) -> None:
        assert self._process.stdout is not None
        while True:
            line = await self._process.stdout.readline()
            if not line:
                break
            self._handle_line(line)

        return_code = await self._process.wait()
        if self._closed:
            return
        if self._stderr_task is not None:
            # Let the stderr tail catch up so the crash message carries it
            await asyncio.wait({self._stderr_task}, timeout=Timeouts.STDERR_DRAIN_SECONDS)
            if self._closed:
                return

        message = f"Agent process exited with code {return_code}"
        if self._stderr_tail:
            message += f": {' | '.join(self._stderr_tail)}"
        logger.warning(f"[{self._label}] {message}")
        self._dispatch(
            SessionEvent(
                type=SessionEventType.ERROR.value,
                data={"message": message, "errorType": ErrorKind.CRASH.value},
            )
        )

    async def _read_stderr(self) -> None:
        assert self._process.stderr is not None
        while True:
            line = await self._process.stderr.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                self._stderr_tail.append(text)
                logger.debug(f"[{self._label} stderr] {text}")

    def _handle_line(self, line: bytes) -> None:
        text = line.decode("utf-8", errors="replace").strip()
        if not text:
            return

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"[{self._label}] Ignoring non-JSON output: {text[:200]}")
            return
        if not isinstance(payload, dict):
            logger.debug(f"[{self._label}] Ignoring non-object output: {text[:200]}")
            return

        try:
            event = SessionEvent.from_dict(payload)
        except ValueError as e:
            logger.debug(f"[{self._label}] {e}")
            return

        if event.type == SessionEventType.SESSION_START:
            backend_id = event.get_str("sessionId")
            if backend_id:
                self.session_id = backend_id

        self._dispatch(event)

    async def write_command(self, payload: Dict[str, Any]) -> None:
        """
        Write one command line to the agent's stdin.

        Raises:
            BackendCrashError: If the process is gone or stdin is closed
        """
        stdin = self._process.stdin
        if self._process.returncode is not None or stdin is None or stdin.is_closing():
            raise self._exited_error()

        try:
            stdin.write((json.dumps(payload) + "\n").encode("utf-8"))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise self._exited_error(str(e)) from e

    def _exited_error(self, reason: str = "") -> BackendCrashError:
        return_code = self._process.returncode
        message = f"Agent process exited with code {return_code}"
        if reason:
            message += f": {reason}"
        elif self._stderr_tail:
            message += f": {' | '.join(self._stderr_tail)}"
        return BackendCrashError(message, exit_code=return_code)

    async def send(self, prompt: str) -> str:
        message_id = uuid.uuid4().hex
        await self.write_command({"type": "user.message", "id": message_id, "prompt": prompt})
        return message_id

    async def abort(self) -> None:
        await self.write_command({"type": "abort"})

    async def destroy(self) -> None:
        self._closed = True
        if self._on_close is not None:
            self._on_close(self)
            self._on_close = None
        if self._process.returncode is None:
            self._process.terminate()
            try:
                await asyncio.wait_for(
                    self._process.wait(), timeout=Timeouts.PROCESS_TERMINATE_SECONDS
                )
            except asyncio.TimeoutError:
                logger.warning(f"[{self._label}] Agent process did not exit, killing it")
                self._process.kill()
                await self._process.wait()

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()


class JsonlProcessBackend(AgentBackend):
    """Starts one agent child process per session."""

    def __init__(
        self,
        command: Sequence[str],
        name: str = "agent",
        base_env: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize backend.

        Args:
            command: Agent argv; the executable is resolved on PATH at start()
            name: Label for logs
            base_env: Environment entries added to every session process
        """
        if not command:
            raise InitializationError("Agent command is empty", agent=name)
        self.command = list(command)
        self.name = name
        self.base_env = dict(base_env or {})
        self._executable: Optional[str] = None
        self._sessions: Set[JsonlProcessSession] = set()

    @property
    def is_started(self) -> bool:
        return self._executable is not None

    async def start(self) -> None:
        executable = shutil.which(self.command[0])
        if executable is None:
            raise InitializationError(
                f"Agent executable not found: {self.command[0]}", agent=self.name
            )
        self._executable = executable
        logger.debug(f"[{self.name}] Using agent executable {executable}")

    async def create_session(
        self,
        *,
        model: str,
        working_dir: str,
        system_prompt: str = "",
        env: Optional[Mapping[str, str]] = None,
    ) -> JsonlProcessSession:
        if self._executable is None:
            raise InitializationError(f"{self.name} backend is not started", agent=self.name)

        process_env = {**os.environ, **self.base_env, **(env or {})}
        process = await asyncio.create_subprocess_exec(
            self._executable,
            *self.command[1:],
            cwd=working_dir,
            env=process_env,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=STREAM_LIMIT_BYTES,
        )

        session = JsonlProcessSession(
            process,
            session_id=uuid.uuid4().hex,
            label=self.name,
            on_close=self._sessions.discard,
        )
        session.start_reading()
        try:
            await session.write_command(
                {
                    "type": "session.configure",
                    "model": model,
                    "workingDirectory": working_dir,
                    "systemPrompt": system_prompt,
                }
            )
        except SessionError:
            await session.destroy()
            raise

        self._sessions.add(session)
        logger.debug(f"[{self.name}] Agent process started (pid={process.pid})")
        return session

    async def stop(self) -> None:
        sessions = list(self._sessions)
        self._sessions.clear()
        for session in sessions:
            await session.destroy()
        self._executable = None
