"""Thin async wrapper around the grpcurl command-line client."""

import asyncio
import json
import logging
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class GrpcurlClient:
    """Calls a gRPC server through grpcurl with server reflection.

    Every call returns the textual output, or None when grpcurl exits
    non-zero, cannot be started, or exceeds ``max_time``.
    """

    endpoint: str
    executable: str = "grpcurl"
    plaintext: bool = True
    max_time: float = 30.0

    def is_available(self) -> bool:
        """Check if grpcurl can be found on PATH."""
        return shutil.which(self.executable) is not None

    def base_args(self) -> Sequence[str]:
        args = [self.executable, "-max-time", f"{self.max_time:g}"]
        if self.plaintext:
            args.append("-plaintext")
        return args

    async def list_services(self) -> Sequence[str] | None:
        """List services exposed through reflection."""
        output = await self._run([*self.base_args(), self.endpoint, "list"])
        return _lines(output)

    async def list_methods(self, service: str) -> Sequence[str] | None:
        """List methods of a service exposed through reflection."""
        output = await self._run([*self.base_args(), self.endpoint, "list", service])
        return _lines(output)

    async def invoke(
        self,
        method: str,
        payload: Mapping[str, Any] | None = None,
        *,
        first_message_only: bool = False,
    ) -> str | None:
        """Invoke a method with a JSON request body sent on stdin.

        Args:
            method: Fully qualified method (``package.Service/Method``)
            payload: Request message as a JSON-compatible mapping
            first_message_only: For server-streaming methods, return as soon as
                the first line of output arrives and stop grpcurl

        """
        args = [*self.base_args(), "-d", "@", self.endpoint, method]
        body = json.dumps(payload or {})
        if first_message_only:
            return await self._first_line(args, body)
        return await self._run(args, body)

    async def _run(self, args: Sequence[str], stdin: str | None = None) -> str | None:
        log.debug("Running: %s", " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE if stdin is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            log.debug("Cannot start %s: %s", self.executable, exc)
            return None

        try:
            stdout, stderr = await process.communicate(
                stdin.encode() if stdin is not None else None
            )
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            await process.wait()
            raise
        if process.returncode != 0:
            log.debug(
                "grpcurl exited with %s: %s",
                process.returncode,
                stderr.decode().strip(),
            )
            return None
        return stdout.decode(errors="replace")

    async def _first_line(self, args: Sequence[str], stdin: str) -> str | None:
        log.debug("Running: %s", " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            log.debug("Cannot start %s: %s", self.executable, exc)
            return None

        if process.stdin is None or process.stdout is None:
            raise RuntimeError("grpcurl was started without pipes")
        try:
            try:
                process.stdin.write(stdin.encode())
                await process.stdin.drain()
                process.stdin.close()
            except (BrokenPipeError, ConnectionResetError):
                log.debug("grpcurl exited before reading the request")

            line = await asyncio.wait_for(process.stdout.readline(), self.max_time)
        except TimeoutError:
            line = b""
        finally:
            if process.returncode is None:
                process.kill()
            await process.wait()

        return line.decode(errors="replace").strip() or None


def _lines(output: str | None) -> Sequence[str] | None:
    if output is None:
        return None
    return [line.strip() for line in output.splitlines() if line.strip()]
