"""Test fixtures for httpsdir tests."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

CA_ROOT = "/home/dev/.local/share/mkcert"

TRUSTED_TRANSCRIPT = f"""Using the local CA at "{CA_ROOT}" ✨

Created a new certificate valid for the following names 📜
 - "localhost"
 - "127.0.0.1"

The certificate is at "./localhost+1.pem" and the key at "./localhost+1-key.pem" ✅

It will expire on 18 January 2029 🗓
"""

UNTRUSTED_TRANSCRIPT = f"""Created a new local CA at "{CA_ROOT}" 💥
Note: the local CA is not installed in the system trust store.
Run "mkcert -install" for certificates to be trusted automatically ⚠️

Created a new certificate valid for the following names 📜
 - "localhost"

The certificate is at "./localhost.pem" and the key at "./localhost-key.pem" ✅
"""

NO_CA_TRANSCRIPT = """Created a new certificate valid for the following names 📜
 - "example.test"

The certificate is at "./example.test.pem" and the key at "./example.test-key.pem" ✅
"""


@dataclass
class MkcertStub:
    """Executable standing in for mkcert, records how it was called."""

    path: Path
    calls_file: Path

    @property
    def called(self) -> bool:
        return self.calls_file.exists()

    @property
    def cwd(self) -> Path:
        return Path(self.calls_file.read_text(encoding="utf-8").splitlines()[0])

    @property
    def args(self) -> list[str]:
        return self.calls_file.read_text(encoding="utf-8").splitlines()[1:]


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def make_mkcert_stub(bin_dir: Path) -> Callable[..., MkcertStub]:
    """Return factory writing a mkcert stub that prints `transcript` and exits with `exit_code`."""

    def _make(transcript: str, *, exit_code: int = 0, name: str = "mkcert", sleep: int = 0) -> MkcertStub:
        transcript_file = bin_dir / f"{name}.out"
        transcript_file.write_text(transcript, encoding="utf-8")
        calls_file = bin_dir / f"{name}.calls"
        script = bin_dir / name
        script.write_text(
            "#!/bin/sh\n"
            f'pwd -P > "{calls_file}"\n'
            f'for arg in "$@"; do printf \'%s\\n\' "$arg" >> "{calls_file}"; done\n'
            f'cat "{transcript_file}" >&2\n'
            + (f"exec sleep {sleep}\n" if sleep else "")
            + f"exit {exit_code}\n",
            encoding="utf-8",
        )
        script.chmod(0o755)
        return MkcertStub(script, calls_file)

    return _make


@pytest.fixture
def cert_dir(tmp_path: Path) -> Path:
    path = tmp_path / "certs"
    path.mkdir()
    return path


@pytest.fixture
def cert_not_after() -> datetime:
    return datetime(2029, 1, 18, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def pem_cert_file(cert_dir: Path, cert_not_after: datetime) -> Path:
    """Write a self-signed localhost certificate and return its path."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(cert_not_after - timedelta(days=30))
        .not_valid_after(cert_not_after)
        .sign(key, hashes.SHA256())
    )
    path = cert_dir / "localhost.pem"
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    (cert_dir / "localhost-key.pem").write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return path
