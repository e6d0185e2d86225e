from typing import Sequence
from local_https.domain.cert import Cert


class MkcertError(Exception):
    msg: str
    
    def __init__(self, msg: str) -> None:
        self.msg = msg
        super().__init__(f"mkcert: {msg}")


class NoDomainsError(MkcertError):
    def __init__(self) -> None:
        super().__init__("no domains specified")


class MkcertNotFoundError(MkcertError):
    exe_path: str
    
    def __init__(self, exe_path: str) -> None:
        self.exe_path = exe_path
        super().__init__(f"executable '{exe_path}' not found, is mkcert installed?")


class MkcertExecError(MkcertError):
    cmd: Sequence[str]
    return_code: int | None
    output: str
    
    def __init__(
        self,
        *,
        cmd: Sequence[str],
        return_code: int | None,
        output: str
    ) -> None:
        self.cmd = cmd
        self.return_code = return_code
        self.output = output
        
        if return_code is None:
            super().__init__(f"command '{' '.join(cmd)}' timed out")
        else:
            super().__init__(f"command '{' '.join(cmd)}' failed with exit status {return_code}")


class CaNotTrustedError(MkcertError):
    cert: Cert
    
    def __init__(self, cert: Cert) -> None:
        self.cert = cert
        super().__init__(f"CA at {cert.ca_root or '<unknown>'} not trusted, run mkcert -install")
