import re
from dataclasses import dataclass

# mkcert has no machine readable output, these follow its log phrasing
CA_PATTERN = re.compile(r'local CA at "(.+?)" [💥✨]\s*$', re.MULTILINE)
FILES_PATTERN = re.compile(r'The certificate is at "(.+?)" and the key at "(.+?)"', re.MULTILINE)
NOT_TRUSTED_MARKER = "not installed"


@dataclass(frozen=True)
class MkcertOutput:
    ca_root: str
    trusted: bool
    cert_file: str
    key_file: str
    
    @classmethod
    def parse(cls, output: str) -> "MkcertOutput":
        cert_file, key_file = parse_files(output)
        return cls(
            ca_root = parse_ca_root(output),
            trusted = parse_trusted(output),
            cert_file = cert_file,
            key_file = key_file
        )


def parse_ca_root(output: str) -> str:
    match = CA_PATTERN.search(output)
    if not match:
        return ""
    return match.group(1)


def parse_trusted(output: str) -> bool:
    return NOT_TRUSTED_MARKER not in output


def parse_files(output: str) -> tuple[str, str]:
    match = FILES_PATTERN.search(output)
    if not match:
        return "", ""
    return match.group(1), match.group(2)
