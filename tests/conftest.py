"""Pytest configuration and common fixtures."""

import asyncio
import os
import sys
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Try to load test-specific environment file if it exists
test_env_file = Path(__file__).parent / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file)

os.environ.setdefault("ENV", "testing")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import pytest

from agentrelay.core.config.settings import reset_settings
from agentrelay.services.session.backend import AgentBackend, BackendSession
from agentrelay.services.session.events import SessionEvent

# Settings read from the environment; cleared so a developer shell cannot leak in
RELAY_ENV_VARS = [
    "CCS_DIR",
    "CCS_HOME",
    "CLAUDE_ACCOUNTS",
    "ACCOUNT_COOLDOWN_MS",
    "STREAMING_THROTTLE_MS",
    "MIN_SEGMENT_CHARS",
    "QUERY_TIMEOUT_SECONDS",
    "WORKING_DIR",
    "DEFAULT_AGENT",
    "CLAUDE_MODEL",
    "COPILOT_MODEL",
    "CLAUDE_COMMAND",
    "COPILOT_COMMAND",
    "GITHUB_TOKEN",
    "COPILOT_GITHUB_TOKEN",
    "SAFETY_PROMPT",
    "LOG_LEVEL",
    "LOG_JSON",
    "LOG_DIR",
]


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, tmp_path):
    """Isolate every test from the developer environment and settings singleton."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENV", "testing")
    # Keep a stray .env in the repository root out of RelaySettings
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


# Script step: an event to dispatch, or a callable run in between (e.g. advance a clock)
ScriptStep = Union[SessionEvent, Callable[[], Any]]


def event(event_type: str, **data: Any) -> SessionEvent:
    """Build a SessionEvent."""
    return SessionEvent(type=event_type, data=data)


class FakeSession(BackendSession):
    """In-memory backend session that replays scripted events after each send."""

    def __init__(self, session_id: str = "fake-session-0001"):
        super().__init__(session_id)
        self.sent: List[str] = []
        self.scripts: List[Sequence[ScriptStep]] = []
        self.send_error: Optional[BaseException] = None
        self.abort_error: Optional[BaseException] = None
        self.abort_calls = 0
        self.destroyed = False

    def queue_reply(self, *steps: ScriptStep) -> None:
        """Queue the events played back after the next send."""
        self.scripts.append(steps)

    def emit(self, event_type: str, **data: Any) -> None:
        """Dispatch one event to subscribers immediately."""
        self._dispatch(event(event_type, **data))

    def _play(self, steps: Sequence[ScriptStep]) -> None:
        for step in steps:
            if isinstance(step, SessionEvent):
                self._dispatch(step)
            else:
                step()

    async def send(self, prompt: str) -> str:
        self.sent.append(prompt)
        if self.send_error is not None:
            raise self.send_error
        if self.scripts:
            steps = self.scripts.pop(0)
            asyncio.get_running_loop().call_soon(self._play, steps)
        return f"msg-{len(self.sent)}"

    async def abort(self) -> None:
        self.abort_calls += 1
        if self.abort_error is not None:
            raise self.abort_error
        self._dispatch(event("session.error", message="Operation aborted by user"))

    async def destroy(self) -> None:
        self.destroyed = True


class FakeBackend(AgentBackend):
    """Backend handing out FakeSession instances."""

    name = "fake"

    def __init__(self):
        self.started = False
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error: Optional[BaseException] = None
        self.create_error: Optional[BaseException] = None
        self.sessions: List[FakeSession] = []
        self.session_envs: List[Dict[str, str]] = []
        self.session_models: List[str] = []
        self.pending_scripts: List[Sequence[ScriptStep]] = []

    @property
    def is_started(self) -> bool:
        return self.started

    @property
    def session(self) -> FakeSession:
        """Most recently created session."""
        return self.sessions[-1]

    def queue_reply(self, *steps: ScriptStep) -> None:
        """Queue a reply for the next send, on whichever session is current then."""
        self.pending_scripts.append(steps)

    async def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def create_session(
        self,
        *,
        model: str,
        working_dir: str,
        system_prompt: str = "",
        env: Optional[Mapping[str, str]] = None,
    ) -> FakeSession:
        if self.create_error is not None:
            raise self.create_error
        session = FakeSession(session_id=f"fake-session-{len(self.sessions) + 1:04d}")
        session.scripts = self.pending_scripts
        self.sessions.append(session)
        self.session_envs.append(dict(env or {}))
        self.session_models.append(model)
        return session

    async def stop(self) -> None:
        self.stop_calls += 1
        self.started = False


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UpdateRecorder:
    """Status callback that records every update."""

    def __init__(self):
        self.updates: List[tuple] = []

    async def __call__(self, update_type, content, segment_id=None):
        self.updates.append((getattr(update_type, "value", update_type), content, segment_id))

    def of_type(self, update_type: str) -> List[tuple]:
        return [u for u in self.updates if u[0] == update_type]


def write_instances(root: Path, *names: str) -> None:
    """Create instance directories for the given sanitized names."""
    for name in names:
        (root / "instances" / name).mkdir(parents=True, exist_ok=True)


@pytest.fixture
def fake_backend():
    """FakeBackend instance."""
    return FakeBackend()


@pytest.fixture
def clock():
    """ManualClock instance."""
    return ManualClock()


@pytest.fixture
def recorder():
    """UpdateRecorder instance."""
    return UpdateRecorder()


@pytest.fixture
def pool_root(tmp_path):
    """Empty credential profile store root."""
    root = tmp_path / "ccs"
    root.mkdir()
    return root
