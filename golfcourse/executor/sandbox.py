"""Sandboxed execution of submitted code.

Every run gets a throwaway working directory and its own interpreter
process. Two backends are available:

- ``docker`` (default): a fresh container with no network, read-only filesystem and
  memory/CPU/pids limits.
- ``process``: a local child process with a scrubbed environment, CPU and
  memory rlimits, and a wall-clock deadline. It shares the host, so it is
  meant for development; setting ``sandbox_user`` runs children as an
  unprivileged user that cannot read the server's environment or files.

JavaScript runs through a small harness that evaluates the submission as a
function body after replacing the child's global ``console`` with one whose
``log`` writes into a buffer local to that process.
"""

import asyncio
import logging
import os
import shutil
import signal
import tempfile
import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional

from golfcourse.config import settings

logger = logging.getLogger(__name__)


class Language(str, Enum):
    """Supported programming languages."""
    JAVASCRIPT = "javascript"
    PYTHON = "python"


HARNESS_FILE = "harness.js"

# Reads the submission from argv[2], swaps the global console for a buffering
# one, runs the submission as a function body, prints the buffered log lines
# once it returns.
JS_HARNESS = r"""
const fs = require('fs');
const source = fs.readFileSync(process.argv[2], 'utf8');
const writeOut = process.stdout.write.bind(process.stdout);
const writeErr = process.stderr.write.bind(process.stderr);
const lines = [];
const sandboxConsole = Object.create(console);
sandboxConsole.log = (...args) => { lines.push(args.join(' ')); };
Object.defineProperty(globalThis, 'console', {
  value: sandboxConsole,
  writable: true,
  configurable: true,
  enumerable: false,
});
let failed = false;
try {
  new Function(source)();
} catch (err) {
  failed = true;
  const message = err !== null && typeof err === 'object' && 'message' in err ? err.message : err;
  writeErr(String(message));
  process.exitCode = 1;
}
if (!failed) {
  writeOut(lines.join('\n'));
}
"""


@dataclass(frozen=True)
class LanguageConfig:
    """How to run one language in each backend."""
    source_file: str
    interpreter: str  # local executable for the process backend
    image: str  # Docker image for the docker backend
    image_interpreter: str
    args: tuple[str, ...]  # arguments after the interpreter, relative to the workdir
    cap_address_space: bool  # V8 reserves large virtual ranges, so node is exempt


LANGUAGE_CONFIGS: dict[Language, LanguageConfig] = {
    Language.JAVASCRIPT: LanguageConfig(
        source_file="solution.js",
        interpreter=settings.node_command,
        image=settings.node_image,
        image_interpreter="node",
        args=(HARNESS_FILE, "solution.js"),
        cap_address_space=False,
    ),
    Language.PYTHON: LanguageConfig(
        source_file="solution.py",
        interpreter=settings.python_command,
        image=settings.python_image,
        image_interpreter="python",
        args=("-I", "solution.py"),
        cap_address_space=True,
    ),
}


@dataclass
class SandboxRun:
    """Raw result of running code once."""
    success: bool
    stdout: str
    stderr: str
    exit_code: int
    execution_time_ms: int
    timed_out: bool = False
    error: Optional[str] = None  # machine-readable failure kind


class OutputLimitExceeded(Exception):
    """The child wrote more than the capture limit."""


async def _read_bounded(stream: asyncio.StreamReader, limit: int) -> bytes:
    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise OutputLimitExceeded()
        chunks.append(chunk)
    return b"".join(chunks)


class SandboxExecutor:
    """Runs code in an isolated child process or container.

    Security features:
    - Fresh process (or container) and working directory per run
    - Wall-clock deadline, the whole process group is killed on overrun
    - CPU time and address space rlimits, optional unprivileged user (process backend)
    - No network, read-only filesystem, memory/pids limits (docker backend)
    - Scrubbed environment
    - Bounded output capture
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        timeout: Optional[float] = None,
        memory_mb: Optional[int] = None,
        max_concurrent: Optional[int] = None,
        max_output_bytes: int = 1_000_000,
        configs: Optional[dict[Language, LanguageConfig]] = None,
        user: Optional[str] = None,
    ):
        self.backend = backend or settings.sandbox_backend
        self.user = user if user is not None else settings.sandbox_user
        self.timeout = timeout if timeout is not None else settings.sandbox_timeout
        self.memory_mb = memory_mb or settings.sandbox_memory_mb
        self.max_output_bytes = max_output_bytes
        self.max_concurrent = max_concurrent or settings.max_concurrent_executions
        self.configs = configs if configs is not None else LANGUAGE_CONFIGS
        self._semaphore = asyncio.Semaphore(self.max_concurrent)
        self._docker_available: Optional[bool] = None

    def with_interpreter(self, language: Language, interpreter: str) -> "SandboxExecutor":
        """Return a copy of this executor using another local interpreter."""
        configs = dict(self.configs)
        configs[language] = replace(configs[language], interpreter=interpreter)
        return SandboxExecutor(
            backend=self.backend,
            timeout=self.timeout,
            memory_mb=self.memory_mb,
            max_concurrent=self.max_concurrent,
            max_output_bytes=self.max_output_bytes,
            configs=configs,
            user=self.user,
        )

    def _user_ids(self) -> Optional[tuple[int, int]]:
        """uid and gid of the configured sandbox user, None to keep the server's."""
        if not self.user:
            return None
        import pwd

        if self.user.isdigit():
            entry = pwd.getpwuid(int(self.user))
        else:
            entry = pwd.getpwnam(self.user)
        return entry.pw_uid, entry.pw_gid

    async def _check_docker(self) -> bool:
        """Check if Docker is available."""
        if self._docker_available is not None:
            return self._docker_available

        try:
            proc = await asyncio.create_subprocess_exec(
                "docker", "version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await proc.wait()
            self._docker_available = proc.returncode == 0
        except FileNotFoundError:
            self._docker_available = False

        return self._docker_available

    def _child_env(self, workdir: str) -> dict[str, str]:
        return {
            "PATH": os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin"),
            "HOME": workdir,
            "LANG": "C.UTF-8",
            "PYTHONIOENCODING": "utf-8",
            "PYTHONDONTWRITEBYTECODE": "1",
        }

    def _preexec(self, config: LanguageConfig):
        """Build the rlimit hook run in the child before exec."""
        if os.name == "nt":
            return None
        import resource

        cpu_seconds = max(1, int(self.timeout)) + 1
        mem_bytes = self.memory_mb * 1024 * 1024

        def _set_limits():
            resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds))
            if config.cap_address_space:
                resource.setrlimit(resource.RLIMIT_AS, (mem_bytes, mem_bytes))

        return _set_limits

    def _docker_command(self, config: LanguageConfig, workdir: str, name: str) -> list[str]:
        memory = f"{self.memory_mb}m"
        return [
            "docker", "run",
            "--rm",
            "--name", name,
            "--network", settings.sandbox_docker_network,
            "--memory", memory,
            "--memory-swap", memory,
            "--cpus", "1",
            "--pids-limit", "64",
            "--read-only",
            "--tmpfs", "/tmp:size=10M",
            "--security-opt", "no-new-privileges",
            "-v", f"{workdir}:/code:ro",
            "-w", "/code",
            config.image,
            config.image_interpreter,
            *config.args,
        ]

    async def execute(self, code: str, language: Language) -> SandboxRun:
        """Execute code once and capture its output.

        Args:
            code: Source code to execute
            language: Programming language

        Returns:
            SandboxRun with output, exit code and timing
        """
        config = self.configs.get(language)
        if not config:
            return SandboxRun(
                success=False,
                stdout="",
                stderr=f"Unsupported language: {language}",
                exit_code=-1,
                execution_time_ms=0,
                error="unsupported_language",
            )

        if self.backend == "docker" and not await self._check_docker():
            return SandboxRun(
                success=False,
                stdout="",
                stderr="Docker is not available",
                exit_code=-1,
                execution_time_ms=0,
                error="sandbox_unavailable",
            )

        async with self._semaphore:
            workdir = tempfile.mkdtemp(prefix="golfcourse_")
            try:
                Path(workdir, config.source_file).write_text(code, encoding="utf-8")
                if language == Language.JAVASCRIPT:
                    Path(workdir, HARNESS_FILE).write_text(JS_HARNESS, encoding="utf-8")
                if self.backend == "process":
                    self._hand_over(workdir)
                return await self._run(config, workdir)
            finally:
                shutil.rmtree(workdir, ignore_errors=True)

    def _hand_over(self, workdir: str) -> None:
        """Give the sandbox user ownership of the run's working directory."""
        ids = self._user_ids()
        if ids is None:
            return
        uid, gid = ids
        os.chown(workdir, uid, gid)
        for path in Path(workdir).iterdir():
            os.chown(path, uid, gid)

    async def _run(self, config: LanguageConfig, workdir: str) -> SandboxRun:
        container_name = None
        if self.backend == "docker":
            container_name = f"golfcourse-{uuid.uuid4().hex[:12]}"
            cmd = self._docker_command(config, workdir, container_name)
            spawn_kwargs = {}
        else:
            cmd = [config.interpreter, *config.args]
            spawn_kwargs = {
                "cwd": workdir,
                "env": self._child_env(workdir),
                "preexec_fn": self._preexec(config),
                "start_new_session": True,
            }
            ids = self._user_ids()
            if ids is not None:
                spawn_kwargs.update(user=ids[0], group=ids[1], extra_groups=[])

        start_time = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **spawn_kwargs,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.warning("Interpreter %s could not be started: %s", cmd[0], e)
            return SandboxRun(
                success=False,
                stdout="",
                stderr=f"Interpreter not available: {cmd[0]}",
                exit_code=-1,
                execution_time_ms=0,
                error="sandbox_unavailable",
            )

        try:
            stdout, stderr, _ = await asyncio.wait_for(
                asyncio.gather(
                    _read_bounded(proc.stdout, self.max_output_bytes),
                    _read_bounded(proc.stderr, self.max_output_bytes),
                    proc.wait(),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            await self._kill(proc, container_name)
            logger.info("Execution killed after %ss deadline", self.timeout)
            return SandboxRun(
                success=False,
                stdout="",
                stderr=f"Execution timed out after {self.timeout:g} seconds",
                exit_code=-1,
                execution_time_ms=int(self.timeout * 1000),
                timed_out=True,
                error="execution_timeout",
            )
        except OutputLimitExceeded:
            await self._kill(proc, container_name)
            return SandboxRun(
                success=False,
                stdout="",
                stderr=f"Output exceeded {self.max_output_bytes} bytes",
                exit_code=-1,
                execution_time_ms=int((time.perf_counter() - start_time) * 1000),
                error="output_limit_exceeded",
            )

        execution_time_ms = int((time.perf_counter() - start_time) * 1000)
        return SandboxRun(
            success=proc.returncode == 0,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode,
            execution_time_ms=execution_time_ms,
        )

    async def _kill(self, proc: asyncio.subprocess.Process, container_name: Optional[str]) -> None:
        if container_name:
            killer = await asyncio.create_subprocess_exec(
                "docker", "rm", "-f", container_name,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await killer.wait()
        if proc.returncode is None:
            try:
                if self.backend == "process":
                    os.killpg(proc.pid, signal.SIGKILL)
                else:
                    proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()


# Global sandbox executor instance
sandbox = SandboxExecutor()
