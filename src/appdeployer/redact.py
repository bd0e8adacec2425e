"""Secret redaction for log records and captured command output."""

import logging
import re
from typing import Iterable, List, Set

_MIN_SECRET_LENGTH = 4
_MASK = "***"

_secret_values: Set[str] = set()


def register_secret(value: str):
    """Mask ``value`` in every record passing through SecretRedactingFilter."""
    if value and len(value) >= _MIN_SECRET_LENGTH:
        _secret_values.add(value)


def clear_secrets():
    _secret_values.clear()


def _patterns(extra: Iterable[str] = ()) -> List[re.Pattern]:
    values = set(_secret_values)
    values.update(v for v in extra if v and len(v) >= _MIN_SECRET_LENGTH)
    # Longer values first so a secret containing another one is fully masked
    return [re.compile(re.escape(v)) for v in sorted(values, key=len, reverse=True)]


def redact_secrets(text: str, extra: Iterable[str] = ()) -> str:
    for pattern in _patterns(extra):
        text = pattern.sub(_MASK, text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Replaces registered secret values in log records with '***'.

    Handles both pre-formatted messages and %-style messages with args.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not _secret_values:
            return True

        record.msg = redact_secrets(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: redact_secrets(v) if isinstance(v, str) else v for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(redact_secrets(a) if isinstance(a, str) else a for a in record.args)
        return True
