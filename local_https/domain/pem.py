from pathlib import Path
from datetime import datetime
from cryptography import x509

DATE_FMT = "%Y-%m-%d %H:%M"


def get_cert_expire_date(cert_file: str | Path) -> datetime:
    """Expiry (UTC) of the first certificate in a PEM file, leaf first as mkcert writes it."""
    cert_file = Path(cert_file)
    try:
        certs = x509.load_pem_x509_certificates(cert_file.read_bytes())
    except ValueError as e:
        raise ValueError(f"Cannot load certificate from file '{cert_file}': {e}")
    return certs[0].not_valid_after_utc
