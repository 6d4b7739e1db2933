"""Field extraction for raw lab interface confirmation payloads.

A confirmation is a text blob with a few ``Key:value`` header lines followed
by the HL7 message itself, e.g.::

    Received Time:20260114093012
    Accession:100234
    MSH|^~\\&|LIS|LAB|...
    ORC|OK|...
"""

import re
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()

RECEIVED_TIME_PATTERN = re.compile(r"Received Time:(\d+)")
ACCESSION_PATTERN = re.compile(r"Accession:(\d+)")
HL7_MESSAGE_PATTERN = re.compile(r"(MSH\|.*)", re.DOTALL)


@dataclass(frozen=True)
class ParsedConfirmation:
    """Fields extracted from one confirmation payload.

    ``missing_fields`` names every field the payload did not contain. A
    missing field is not an error; the value is simply left as None (or, for
    the HL7 message, the whole payload is kept).
    """

    received_time: str | None
    accession_number: str | None
    hl7_message: str
    missing_fields: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields


def parse_confirmation(raw: str, correlation_id: str | None = None) -> ParsedConfirmation:
    """Extract received time, accession number and HL7 body from a payload."""
    received_match = RECEIVED_TIME_PATTERN.search(raw)
    accession_match = ACCESSION_PATTERN.search(raw)
    hl7_match = HL7_MESSAGE_PATTERN.search(raw)

    missing: list[str] = []
    if received_match is None:
        missing.append("received_time")
    if accession_match is None:
        missing.append("accession_number")
    if hl7_match is None:
        missing.append("hl7_message")

    parsed = ParsedConfirmation(
        received_time=received_match.group(1) if received_match else None,
        accession_number=accession_match.group(1) if accession_match else None,
        hl7_message=hl7_match.group(1) if hl7_match else raw,
        missing_fields=tuple(missing),
    )

    if missing:
        logger.warning(
            "Confirmation payload incomplete",
            correlation_id=correlation_id,
            missing_fields=list(missing),
        )
    return parsed
