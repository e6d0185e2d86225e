import os
import subprocess
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Callable, Sequence, Optional
from local_https.domain.cert import Cert, CertRequest
from local_https.domain.mkcert_output import MkcertOutput
from local_https.exception.mkcert_exceptions import (
    CaNotTrustedError,
    MkcertError,
    MkcertExecError,
    MkcertNotFoundError,
    NoDomainsError
)

log = logging.getLogger(__name__)

# Read by mkcert itself, only passed through to the child process
PASSTHROUGH_ENVS = ("CAROOT", "TRUST_STORES")


@dataclass(frozen=True)
class Mkcert:
    """Wrapper around the mkcert CLI (https://github.com/FiloSottile/mkcert).

    mkcert output is parsed to find the certificate file locations and whether
    the CA is trusted. The CA used and the trust stores considered are
    controlled by the CAROOT and TRUST_STORES environment variables, see
    'mkcert -help'.
    """
    exe_path: str = "mkcert"
    timeout: Optional[int] = None
    parser: Callable[[str], MkcertOutput] = field(default=MkcertOutput.parse, repr=False)

    def exec(self, request: CertRequest) -> Cert:
        """Ask mkcert for a certificate, e.g. for localhost:

            Mkcert().exec(CertRequest.build(["localhost", "::1", "127.0.0.1"]))

        Raises CaNotTrustedError carrying the usable certificate when the
        request requires trust and the CA is not installed.
        """
        if not request.domains:
            raise NoDomainsError()

        args: list[str] = []
        if request.cert_file:
            args += ["-cert-file", str(request.cert_file)]
        if request.key_file:
            args += ["-key-file", str(request.key_file)]

        output = self._run([*args, *request.domains], cwd=request.directory)
        parsed = self.parser(output)
        cert = Cert(
            ca_root = parsed.ca_root,
            trusted = parsed.trusted,
            domains = tuple(request.domains),
            file = self._resolve(parsed.cert_file, request.directory),
            key_file = self._resolve(parsed.key_file, request.directory)
        )
        log.debug(f"mkcert certificate for {', '.join(cert.domains)}: {cert}")

        if not cert.trusted and request.require_trusted:
            raise CaNotTrustedError(cert)
        return cert

    def install(self) -> str:
        """Run 'mkcert -install' and return its output."""
        return self._run(["-install"])

    def ca_root(self) -> str:
        """Run 'mkcert -CAROOT' and return the CA directory."""
        return self._run(["-CAROOT"]).strip()

    @staticmethod
    def _resolve(path: str, directory: Optional[Path]) -> str:
        if not path or directory is None or os.path.isabs(path):
            return path
        return str(directory / path)

    def _run(self, args: Sequence[str], *, cwd: Optional[Path] = None) -> str:
        cmd = [self.exe_path, *[str(a) for a in args]]
        envs = ", ".join(f"{env}={os.getenv(env, '')!r}" for env in PASSTHROUGH_ENVS)
        log.debug(f"Running mkcert command in '{cwd or os.getcwd()}' ({envs}): {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout
            )
        except FileNotFoundError as e:
            # Raised for a missing cwd too
            if cwd is not None and not Path(cwd).is_dir():
                raise MkcertError(f"working directory '{cwd}' does not exist") from e
            raise MkcertNotFoundError(self.exe_path) from e
        except OSError as e:
            raise MkcertError(f"cannot execute '{self.exe_path}': {e}") from e
        except subprocess.TimeoutExpired as e:
            output = e.output.decode("utf-8", errors="replace") if isinstance(e.output, bytes) else (e.output or "")
            raise MkcertExecError(cmd=cmd, return_code=None, output=output) from e

        log.debug(f"mkcert return_code={result.returncode} cmd={cmd}")
        if result.returncode != 0:
            raise MkcertExecError(cmd=cmd, return_code=result.returncode, output=result.stdout)
        return result.stdout
