#!/usr/bin/env python3

import sys
import json
import logging
import tempfile
from logging.handlers import RotatingFileHandler
from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import Any, NoReturn, Optional
import click
import typer
from rich.console import Console
from rich.table import Table, box
from local_https.domain.cert import Cert, CertRequest
from local_https.domain.mkcert import Mkcert
from local_https.domain.pem import DATE_FMT, get_cert_expire_date
from local_https.exception.mkcert_exceptions import CaNotTrustedError, MkcertError, MkcertExecError
from local_https.exception.validation_exceptions import ValidationError
from local_https.server.app import create_app, serve as serve_app
from local_https.validation.require import Require

ENV_VAR_BIND = "HTTPSDIR_BIND"
ENV_VAR_LOG_FILE = "HTTPSDIR_LOG_FILE"
ENV_VAR_LOG_LEVEL = "HTTPSDIR_LOG_LEVEL"
ENV_VAR_MKCERT_BIN = "HTTPSDIR_MKCERT_BIN"
DEFAULT_BIND = "localhost:12345"
DEFAULT_DOMAINS = ["localhost"]
ALLOWED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(asctime)s %(levelname)s [pid=%(process)d] [%(name)s] %(message)s"
LOGGER = logging.getLogger("httpsdir")

app = typer.Typer(
    add_completion=True,
    help="Serve local files over HTTPS with a locally-trusted certificate from mkcert"
)
console = Console()
err_console = Console(stderr=True)


class ExitCode(Enum):
    OK = 0
    ERROR = 1
    USAGE = 2
    UNTRUSTED = 3


class Format(Enum):
    TABLE = "table"
    JSON = "json"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]

    @classmethod
    def default(cls) -> "Format":
        return Format.TABLE

    @classmethod
    def from_string(cls, val: str) -> "Format":
        try:
            return Format(val)
        except ValueError:
            raise typer.BadParameter(f"Unknown format: {val}, must be one of: {(', ').join(Format.values())}")


@dataclass
class Settings:
    log_file: str | None
    log_level: str
    mkcert_bin: str

    def get_mkcert(self) -> Mkcert:
        return Mkcert(exe_path=self.mkcert_bin)


class Opt:
    @staticmethod
    def domains() -> Any:
        return typer.Option(
            None, "--domain", "-D",
            help=f"Domain or IP the certificate covers, can be repeated. Defaults to {', '.join(DEFAULT_DOMAINS)}"
        )

    @staticmethod
    def cert_file() -> Any:
        return typer.Option(
            None, "--cert-file",
            help="Override the location of the generated certificate, relative paths are resolved against the certificate directory"
        )

    @staticmethod
    def key_file() -> Any:
        return typer.Option(
            None, "--key-file",
            help="Override the location of the generated private key, relative paths are resolved against the certificate directory"
        )

    @staticmethod
    def format(default: str | None = None) -> Any:
        return typer.Option(
            default or Format.default().value, "--format", "-f",
            help=f"Output format: {', '.join(Format.values())}"
        )


# Commands

@app.callback()
def main(
    ctx: typer.Context,
    log_file: str = typer.Option(
        None, "--log-file",
        envvar=ENV_VAR_LOG_FILE,
        help="Also write logs to this file (rotated)"
    ),
    log_level: str = typer.Option(
        "INFO", "--log-level",
        envvar=ENV_VAR_LOG_LEVEL,
        help=f"Log level, one of: {', '.join(ALLOWED_LOG_LEVELS)}"
    ),
    mkcert_bin: str = typer.Option(
        "mkcert", "--mkcert-bin",
        envvar=ENV_VAR_MKCERT_BIN,
        help="mkcert executable, looked up in PATH unless a path is given. CAROOT and TRUST_STORES are passed to it unchanged"
    )
) -> None:
    log_level = (log_level or "INFO").upper()
    validated(Require.one_of, "--log-level", log_level, ALLOWED_LOG_LEVELS)

    setup_logging(log_file, log_level)
    ctx.obj = Settings(log_file=log_file, log_level=log_level, mkcert_bin=mkcert_bin)


@app.command(help="Serve a directory over HTTPS using a certificate generated by mkcert")
def serve(
    ctx: typer.Context,
    bind: str = typer.Option(
        DEFAULT_BIND, "-b", "--bind",
        envvar=ENV_VAR_BIND,
        help="bind host:port"
    ),
    directory: Path = typer.Option(
        Path("."), "-d", "--dir",
        help="Directory to serve"
    ),
    domains: list[str] = Opt.domains(),
    cert_dir: Optional[Path] = typer.Option(
        None, "--cert-dir",
        help="Directory mkcert writes the certificate to. Defaults to a new temporary directory"
    ),
    cert_file: Optional[Path] = Opt.cert_file(),
    key_file: Optional[Path] = Opt.key_file(),
    allow_untrusted: bool = typer.Option(
        False, "--allow-untrusted",
        help="Keep serving when the mkcert CA is not installed in the trust stores, instead of exiting"
    ),
    fail_fast: bool = typer.Option(
        False, "--fail-fast",
        help=f"Exit with code {ExitCode.ERROR.value} on any mkcert error, a distrusted CA included, without reporting mkcert output or the generated files"
    )
) -> None:
    settings = get_ctx_settings(ctx)
    host, port = validated(Require.bind_address, "--bind", bind)
    root_dir = validated(Require.dir_exists, "--dir", directory)

    if cert_dir is None:
        cert_dir = Path(tempfile.mkdtemp(prefix="mkcert"))
    else:
        cert_dir = validated(Require.dir_exists, "--cert-dir", cert_dir)

    request = CertRequest.build(
        domains or DEFAULT_DOMAINS,
        directory=cert_dir,
        cert_file=cert_file,
        key_file=key_file,
        require_trusted=not allow_untrusted
    )

    try:
        cert = settings.get_mkcert().exec(request)
    except MkcertError as e:
        if fail_fast:
            fail(str(e), ExitCode.ERROR)
        if isinstance(e, CaNotTrustedError):
            LOGGER.error(f"Certificate written to {e.cert.file} and {e.cert.key_file} but not served")
        fail_mkcert(e)

    if not cert.trusted:
        LOGGER.warning(f"CA at {cert.ca_root or '<unknown>'} not trusted, run mkcert -install or '{sys.argv[0]} install'")

    LOGGER.info(f"Using certificate: {cert}")
    LOGGER.info(f"✨ https://{bind}/ ✨")

    try:
        serve_app(create_app(root_dir), host, port, cert)
    except (OSError, SystemExit) as e:
        fail(f"Failed to serve https://{bind}/: {e}", ExitCode.ERROR)


@app.command(help="Generate a certificate with mkcert and show where it was written")
def gen(
    ctx: typer.Context,
    domains: list[str] = Opt.domains(),
    directory: Path = typer.Option(
        Path("."), "-d", "--dir",
        help="Working directory of mkcert, the certificate is written there unless overridden"
    ),
    cert_file: Optional[Path] = Opt.cert_file(),
    key_file: Optional[Path] = Opt.key_file(),
    require_trusted: bool = typer.Option(
        False, "--require-trusted",
        help=f"Exit with code {ExitCode.UNTRUSTED.value} when the mkcert CA is not installed in the trust stores"
    ),
    format: str = Opt.format()
) -> None:
    settings = get_ctx_settings(ctx)
    fmt = Format.from_string(format)
    cert_dir = validated(Require.dir_exists, "--dir", directory)
    request = CertRequest.build(
        domains or DEFAULT_DOMAINS,
        directory=cert_dir,
        cert_file=cert_file,
        key_file=key_file,
        require_trusted=require_trusted
    )

    try:
        cert = settings.get_mkcert().exec(request)
    except CaNotTrustedError as e:
        render_cert(e.cert, fmt)
        fail(str(e), ExitCode.UNTRUSTED)
    except MkcertError as e:
        fail_mkcert(e)

    render_cert(cert, fmt)
    LOGGER.debug(f"Result for {ctx.info_name} command: {cert.to_serializable()}")


@app.command(help="Install the mkcert CA in the system trust stores (mkcert -install)")
def install(ctx: typer.Context) -> None:
    settings = get_ctx_settings(ctx)
    try:
        output = settings.get_mkcert().install()
    except MkcertError as e:
        fail_mkcert(e)

    console.print(output.strip(), markup=False, highlight=False)


@app.command(help="Print the directory of the mkcert CA (mkcert -CAROOT)")
def caroot(ctx: typer.Context) -> None:
    settings = get_ctx_settings(ctx)
    try:
        ca_root = settings.get_mkcert().ca_root()
    except MkcertError as e:
        fail_mkcert(e)

    console.print(ca_root, markup=False, highlight=False, soft_wrap=True)

# Helper functions

def get_ctx_settings(ctx: typer.Context | None = None) -> Settings:
    ctx = ctx or click.get_current_context()
    s = ctx.obj
    if not isinstance(s, Settings):
        raise typer.Exit(code=ExitCode.USAGE.value)
    return s


def validated(check: Any, field: str, *args: Any) -> Any:
    try:
        return check(field, *args)
    except ValidationError as e:
        raise typer.BadParameter(str(e))


def render_cert(cert: Cert, fmt: Format) -> None:
    data = {**cert.to_serializable(), "expire_date": get_expire_date_as_str(cert)}

    if fmt == Format.JSON:
        console.print(json.dumps(data, indent=2, ensure_ascii=False), markup=False, highlight=False, soft_wrap=True)
        return

    table = Table(show_header=True, header_style="bold", expand=True, show_lines=True, box=box.ROUNDED)
    for col in data.keys():
        table.add_column(col, overflow="fold")
    table.add_row(*[", ".join(v) if isinstance(v, list) else str(v or "-") for v in data.values()])
    console.print(table)


def get_expire_date_as_str(cert: Cert) -> str | None:
    if not cert.file or not Path(cert.file).is_file():
        return None
    try:
        return get_cert_expire_date(cert.file).strftime(DATE_FMT)
    except ValueError as e:
        LOGGER.warning(f"Cannot read expire date of {cert.file}: {e}")
        return None


def fail(msg: str, exit_code: ExitCode, *, output: str | None = None) -> NoReturn:
    LOGGER.error(msg)
    err_console.print(msg, style="red", markup=False, highlight=False, soft_wrap=True)

    if output:
        LOGGER.error(f"mkcert output: {output.strip()}")
        err_console.print(output.strip(), style="red", markup=False, highlight=False, soft_wrap=True)
    raise typer.Exit(code=exit_code.value)


def fail_mkcert(e: MkcertError) -> NoReturn:
    if isinstance(e, CaNotTrustedError):
        fail(str(e), ExitCode.UNTRUSTED)
    if isinstance(e, MkcertExecError):
        fail(str(e), ExitCode.ERROR, output=e.output)
    fail(str(e), ExitCode.ERROR)


def setup_logging(log_file: str | None, log_level: str) -> None:
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise typer.BadParameter(
            f"Unknown log level: {log_level}, must be one of: {', '.join(ALLOWED_LOG_LEVELS)}"
        )

    logger = logging.getLogger()
    for h in [h for h in logger.handlers if getattr(h, "_httpsdir_handler", False)]:
        logger.removeHandler(h)
        h.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(RotatingFileHandler(
            filename=log_file,
            maxBytes=2 * 1024 * 1024,
            backupCount=5,
            encoding="UTF-8"
        ))

    for handler in handlers:
        handler._httpsdir_handler = True
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)


if __name__ == "__main__":
    app()
