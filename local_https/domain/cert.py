from pathlib import Path
from dataclasses import dataclass, field
from typing import Sequence, Optional


@dataclass(frozen=True)
class CertRequest:
    """What to ask mkcert for.
    
    Relative `cert_file` and `key_file` overrides are resolved by mkcert
    against `directory` (or the current directory when it is not set).
    """
    domains: tuple[str, ...]
    directory: Optional[Path] = None
    cert_file: Optional[Path] = None
    key_file: Optional[Path] = None
    require_trusted: bool = False
    
    @classmethod
    def build(
        cls,
        domains: Sequence[str],
        *,
        directory: str | Path | None = None,
        cert_file: str | Path | None = None,
        key_file: str | Path | None = None,
        require_trusted: bool = False
    ) -> "CertRequest":
        return cls(
            domains = tuple(domains or ()),
            directory = Path(directory) if directory else None,
            cert_file = Path(cert_file) if cert_file else None,
            key_file = Path(key_file) if key_file else None,
            require_trusted = require_trusted
        )


@dataclass(frozen=True)
class Cert:
    # mkcert directory holding the root CA, empty when mkcert did not report it
    ca_root: str
    # root CA is installed in all of the trust stores mkcert considered
    trusted: bool
    domains: tuple[str, ...] = field(default_factory=tuple)
    file: str = ""
    key_file: str = ""
    
    def to_serializable(self) -> dict:
        return {
            "domains": list(self.domains),
            "cert_file": self.file,
            "key_file": self.key_file,
            "ca_root": self.ca_root,
            "trusted": self.trusted
        }
