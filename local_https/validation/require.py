import re
import ipaddress
from pathlib import Path
from typing import Any, Iterable, Match, Pattern
from local_https.exception.validation_exceptions import ValidationError

BIND_PATTERN = r"^(?P<host>\[[0-9A-Fa-f:.]+\]|[^:\[\]]*):(?P<port>\d+)$"


class Require():
    @staticmethod
    def match(
        field: str,
        val: Any,
        pattern: str | Pattern[str],
        custom_err: str | None = None
    ) -> Match[str]:
        match = re.fullmatch(pattern, str(val))
        if not match:
            Require._raise_error(
                default_err=f"Value '{field}={val}' does not match to '{pattern}' pattern",
                custom_err=custom_err
            )
        return match

    @staticmethod
    def port(
        field: str,
        val: int,
        custom_err: str | None = None
    ) -> int:
        min_val = 1
        max_val = 65535
        try:
            port = int(val)
        except (TypeError, ValueError):
            port = None

        if port is None or not min_val <= port <= max_val:
            Require._raise_error(
                default_err=f"Value '{field}={val}' is not valid port number, value is out of range ({min_val}-{max_val})",
                custom_err=custom_err
            )
        return port

    @staticmethod
    def bind_address(
        field: str,
        val: str,
        custom_err: str | None = None
    ) -> tuple[str, int]:
        match = Require.match(
            field=field,
            val=val,
            pattern=BIND_PATTERN,
            custom_err=custom_err or f"Value '{field}={val}' is not a valid bind address, expected <host>:<port>"
        )
        host = match.group("host")
        if host.startswith("["):
            host = host[1:-1]
            try:
                ipaddress.IPv6Address(host)
            except ValueError as e:
                Require._raise_error(
                    default_err=f"Value '{field}={val}' has invalid IPv6 address, details: {e}",
                    custom_err=custom_err
                )

        return host, Require.port(field, match.group("port"), custom_err)

    @staticmethod
    def dir_exists(
        field: str,
        val: str | Path,
        custom_err: str | None = None
    ) -> Path:
        path = Path(val).expanduser()
        if not path.is_dir():
            Require._raise_error(
                default_err=f"No directory found at path provided for '{field}={val}'",
                custom_err=custom_err
            )
        return path

    @staticmethod
    def one_of(
        field: str,
        val: str,
        allowed_values: Iterable[Any],
        custom_err: str | None = None
    ) -> None:
        allowed_values = list(allowed_values)
        if val not in allowed_values:
            Require._raise_error(
                default_err=f"Value '{field}={val}' is invalid, allowed choices: {(', ').join(map(str, allowed_values))}",
                custom_err=custom_err
            )

    @staticmethod
    def _raise_error(
        default_err: str,
        custom_err: str | None = None
    ) -> None:
        raise ValidationError(custom_err or default_err)
