"""Recover structured values from installer output.

kubeadm prints join instructions for humans; the master init pipeline reads
the advertise address, port, token and CA cert hash back out of that text.
Each pattern declares how many fields it must yield so a change in the
installer's wording fails loudly instead of producing wrong credentials.
"""
import re
from dataclasses import dataclass
from typing import List, Sequence

from ..exceptions import ExtractionError


@dataclass(frozen=True)
class ExtractionPattern:
    """Line marker, capture expression and expected field count."""
    name: str
    marker: str
    capture: str
    fields: int


JOIN_COMMAND = ExtractionPattern(
    name="join command",
    marker=r"kubeadm join",
    capture=r"join (\S+):(\S+) --token (\S+)",
    fields=3,
)

CA_CERT_HASH = ExtractionPattern(
    name="CA cert hash",
    marker=r"sha256:",
    capture=r"(sha256:\S+)",
    fields=1,
)


def extract(text: str, pattern: ExtractionPattern) -> List[str]:
    """Return the captured fields of the first marked line that matches.

    An empty list means nothing matched.
    """
    marker = re.compile(pattern.marker)
    capture = re.compile(pattern.capture)
    for line in text.splitlines():
        if not marker.search(line):
            continue
        match = capture.search(line)
        if match:
            return [group for group in match.groups() if group]
    return []


def extract_fields(text: str, pattern: ExtractionPattern) -> List[str]:
    """Like :func:`extract` but insist on exactly ``pattern.fields`` values.

    Raises:
        ExtractionError: If fewer or more fields were captured
    """
    values = extract(text, pattern)
    if len(values) != pattern.fields:
        raise ExtractionError(
            f"Expected {pattern.fields} field(s) for {pattern.name}, got {len(values)}: {values}"
        )
    return values


def select_columns(text: str, marker: str, indexes: Sequence[int]) -> str:
    """Pick whitespace separated columns from the first line containing marker.

    Used on ``kubectl get`` listings, e.g. ``(1, 2)`` of a pod row gives
    ``"1/1 Running"``. Returns an empty string when no line matches or the
    line is too short.
    """
    for line in text.splitlines():
        if marker not in line:
            continue
        columns = line.split()
        if max(indexes) >= len(columns):
            return ""
        return " ".join(columns[i] for i in indexes)
    return ""
