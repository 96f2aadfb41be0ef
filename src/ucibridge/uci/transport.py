"""Line-oriented transport to a UCI engine subprocess.

The engine is spawned with plain pipes (so stderr stays separate from the
protocol stream) and each output pipe is read by its own background thread
through pexpect's fdspawn, which gives us the same `expect(r"\\r?\\n")` line
matching and EOF/TIMEOUT handling as a pty-backed spawn.

Lines are handed to the consumer through queues only. Process exit is
signalled by a marker queued behind the last stdout line, so a consumer
always sees every line the engine printed before it sees the exit.
"""

import queue
import subprocess
import threading
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pexpect
from loguru import logger
from pexpect import fdpexpect

from ucibridge.uci.errors import SpawnError, SpawnFailure, WriteError, WriteFailure
from ucibridge.uci.messages import QUIT

# Hides the console window on Windows; 0 elsewhere.
_CREATION_FLAGS = getattr(subprocess, "CREATE_NO_WINDOW", 0)


@dataclass
class EngineProcess:
    """A spawned engine child process."""

    executable: Path
    working_dir: Path
    handle: subprocess.Popen
    args: list[str] = field(default_factory=list)

    @property
    def pid(self) -> int:
        return self.handle.pid

    @property
    def alive(self) -> bool:
        return self.handle.poll() is None

    @property
    def returncode(self) -> int | None:
        return self.handle.returncode


@dataclass(frozen=True)
class _ProcessExited:
    returncode: int | None


class _Closed:
    """Wakes up a blocked `lines()` consumer after `stop()`."""


_CLOSED = _Closed()


class LineTransport:
    """Owns the engine process and its three standard streams.

    Example:
        transport = LineTransport(on_unexpected_exit=print)
        transport.start("/usr/bin/stockfish")
        transport.write("uci")
        for line in transport.lines():
            if line == "uciok":
                break
        transport.stop()
    """

    def __init__(
        self,
        *,
        on_unexpected_exit: Callable[[int | None], None] | None = None,
        poll_interval: float = 0.1,
        encoding: str = "utf-8",
    ) -> None:
        """Initialize the transport.

        Args:
            on_unexpected_exit: Called with the return code when the process
                dies without `stop()` having been requested. Runs on the
                thread that drains the line queue.
            poll_interval: How often reader threads check for a stop request.
            encoding: Text encoding of the engine's streams.
        """
        self.on_unexpected_exit = on_unexpected_exit
        self.poll_interval = poll_interval
        self.encoding = encoding

        self._process: EngineProcess | None = None
        self._lines: queue.Queue = queue.Queue()
        self._stderr: queue.Queue = queue.Queue()
        self._threads: list[threading.Thread] = []
        self._halt = threading.Event()
        self._stopping = False
        self._write_lock = threading.Lock()

    @property
    def process(self) -> EngineProcess | None:
        return self._process

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.alive

    def start(
        self,
        path: str | Path,
        working_dir: str | Path | None = None,
        args: Sequence[str] = (),
    ) -> EngineProcess:
        """Spawn the engine and start the reader threads.

        Raises:
            SpawnError: FILE_NOT_FOUND if the executable is missing,
                LAUNCH_FAILED if the OS refuses to start it or a process is
                already running.
        """
        if self._process is not None:
            raise SpawnError(
                SpawnFailure.LAUNCH_FAILED,
                f"Engine already running (pid {self._process.pid})",
            )

        executable = Path(path)
        if not executable.is_file():
            raise SpawnError(SpawnFailure.FILE_NOT_FOUND, f"Engine binary not found: {executable}")

        cwd = Path(working_dir) if working_dir else executable.resolve().parent
        cmd = [str(executable), *args]
        logger.debug(f"Starting UCI engine: {' '.join(cmd)} (cwd={cwd})")

        try:
            handle = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd,
                creationflags=_CREATION_FLAGS,
            )
        except FileNotFoundError as e:
            raise SpawnError(SpawnFailure.FILE_NOT_FOUND, f"Engine binary not found: {e}") from e
        except OSError as e:
            raise SpawnError(SpawnFailure.LAUNCH_FAILED, f"Failed to launch engine: {e}") from e

        self._process = EngineProcess(
            executable=executable, working_dir=cwd, handle=handle, args=list(args)
        )
        self._lines = queue.Queue()
        self._stderr = queue.Queue()
        self._halt = threading.Event()
        self._stopping = False

        self._threads = [
            threading.Thread(
                target=self._read_stdout,
                args=(handle, self._lines),
                name=f"uci-stdout-{handle.pid}",
                daemon=True,
            ),
            threading.Thread(
                target=self._read_stderr,
                args=(handle, self._stderr),
                name=f"uci-stderr-{handle.pid}",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()

        logger.info(f"Engine started: {executable.name} (pid {handle.pid})")
        return self._process

    # ------------------------------------------------------------------
    # Reader threads
    # ------------------------------------------------------------------

    def _iter_pipe(self, pipe) -> Iterator[str]:
        """Yield complete lines from a pipe until EOF or a stop request."""
        child = fdpexpect.fdspawn(
            pipe.fileno(), encoding=self.encoding, codec_errors="replace", use_poll=True
        )
        patterns = [r"\r?\n", pexpect.EOF, pexpect.TIMEOUT]
        while not self._halt.is_set():
            try:
                index = child.expect(patterns, timeout=self.poll_interval)
            except OSError:
                # Pipe closed underneath us during teardown
                return
            if index == 0:
                yield child.before
            elif index == 1:
                if child.before:
                    yield child.before
                return

    def _read_stdout(self, handle: subprocess.Popen, lines: queue.Queue) -> None:
        for line in self._iter_pipe(handle.stdout):
            if line:
                lines.put(line)
        try:
            returncode = handle.wait(timeout=max(self.poll_interval, 1.0))
        except subprocess.TimeoutExpired:
            # Only reachable when stop() halted us while the process lives on
            returncode = None
        lines.put(_ProcessExited(returncode))

    def _read_stderr(self, handle: subprocess.Popen, errors: queue.Queue) -> None:
        for line in self._iter_pipe(handle.stderr):
            if line:
                errors.put(line)

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def lines(self) -> Iterator[str]:
        """Block and yield stdout lines until the process exits or is stopped."""
        lines = self._lines
        while True:
            item = lines.get()
            if item is _CLOSED:
                return
            if isinstance(item, _ProcessExited):
                self._handle_exit(item)
                return
            yield item

    def drain(self) -> Iterator[str]:
        """Yield the stdout lines already queued, without blocking."""
        lines = self._lines
        while True:
            try:
                item = lines.get_nowait()
            except queue.Empty:
                return
            if item is _CLOSED:
                return
            if isinstance(item, _ProcessExited):
                self._handle_exit(item)
                return
            yield item

    def drain_stderr(self) -> Iterator[str]:
        """Yield the stderr lines already queued, without blocking."""
        while True:
            try:
                yield self._stderr.get_nowait()
            except queue.Empty:
                return

    def _handle_exit(self, exited: _ProcessExited) -> None:
        if self._process is None:
            return
        planned = self._stopping
        self._release()
        if planned:
            return
        logger.warning(f"Engine process exited unexpectedly (code {exited.returncode})")
        if self.on_unexpected_exit is not None:
            self.on_unexpected_exit(exited.returncode)

    def write(self, line: str) -> None:
        """Write one line to the engine's stdin and flush.

        Raises:
            WriteError: PROCESS_NOT_RUNNING if there is no live process,
                IO_FAILURE on a broken pipe or other OS error.
        """
        process = self._process
        if process is None or not process.alive or process.handle.stdin is None:
            raise WriteError(WriteFailure.PROCESS_NOT_RUNNING, "Engine not running")

        data = (line + "\n").encode(self.encoding)
        with self._write_lock:
            try:
                process.handle.stdin.write(data)
                process.handle.stdin.flush()
            except (BrokenPipeError, ValueError) as e:
                raise WriteError(
                    WriteFailure.IO_FAILURE, f"Broken pipe writing '{line}': {e}"
                ) from e
            except OSError as e:
                raise WriteError(WriteFailure.IO_FAILURE, f"Failed to write '{line}': {e}") from e

    def stop(self, grace_period: float = 2.0) -> None:
        """Ask the engine to quit, kill it after `grace_period`, release everything."""
        process = self._process
        if process is None:
            return
        self._stopping = True
        handle = process.handle
        try:
            if handle.poll() is None:
                try:
                    self.write(QUIT)
                except WriteError as e:
                    logger.debug(f"Could not send quit: {e}")
                try:
                    handle.wait(timeout=grace_period)
                except subprocess.TimeoutExpired:
                    logger.warning(f"Engine did not exit within {grace_period}s, killing it")
                    handle.kill()
                    handle.wait()
            logger.info(f"Engine stopped (code {handle.returncode})")
        except OSError as e:
            logger.error(f"Error while stopping engine: {e}")
        finally:
            self._release()

    def _release(self) -> None:
        """Join reader threads, close pipes and forget the process."""
        process = self._process
        if process is None:
            return
        self._halt.set()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join(timeout=max(self.poll_interval * 5, 1.0))
        self._threads = []

        handle = process.handle
        for pipe in (handle.stdin, handle.stdout, handle.stderr):
            if pipe is None:
                continue
            try:
                pipe.close()
            except OSError as e:
                logger.debug(f"Error closing engine pipe: {e}")
        if handle.poll() is None:
            handle.kill()
            handle.wait()

        self._process = None
        while True:
            try:
                self._lines.get_nowait()
            except queue.Empty:
                break
        self._lines.put(_CLOSED)
