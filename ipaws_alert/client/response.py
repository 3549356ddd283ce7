"""
Gateway submission outcome and response-body parsing
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


REJECTED_STATUSES = (400, 401, 403, 422)
ERROR_BODY_EXCERPT = 500


class SubmissionStatus(Enum):
    SUCCESS = 'Success'
    REJECTED = 'Rejected'
    NETWORK_ERROR = 'NetworkError'
    UNEXPECTED_HTTP_STATUS = 'UnexpectedHttpStatus'
    TIMEOUT = 'Timeout'


@dataclass(frozen=True)
class GatewayResponse:
    """
    Result of submitting an alert to IPAWS-OPEN.

    Failures always carry at least one error string; successes never do.
    """
    status: SubmissionStatus
    http_status: int = 0  # 0 when no response was received
    server_message_id: Optional[str] = None
    raw_body: Optional[str] = None
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    alert_identifier: Optional[str] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    elapsed: Optional[float] = None  # seconds, whole submission
    attempts: int = 1

    @property
    def is_success(self) -> bool:
        return self.status == SubmissionStatus.SUCCESS

    @property
    def is_retryable(self) -> bool:
        """Transport faults, rate limiting and server errors."""
        if self.status in (SubmissionStatus.TIMEOUT, SubmissionStatus.NETWORK_ERROR):
            return True
        return self.http_status == 429 or self.http_status >= 500

    @classmethod
    def success(
        cls,
        http_status: int,
        body: str,
        alert_identifier: Optional[str] = None
    ) -> 'GatewayResponse':
        return cls(
            status=SubmissionStatus.SUCCESS,
            http_status=http_status,
            server_message_id=extract_message_id(body),
            raw_body=body,
            warnings=tuple(extract_warnings(body)),
            alert_identifier=alert_identifier
        )

    @classmethod
    def failure(
        cls,
        status: SubmissionStatus,
        http_status: int,
        errors: List[str],
        body: Optional[str] = None,
        alert_identifier: Optional[str] = None
    ) -> 'GatewayResponse':
        return cls(
            status=status,
            http_status=http_status,
            raw_body=body,
            errors=tuple(errors) or (f"{status.value} (HTTP {http_status})",),
            alert_identifier=alert_identifier
        )

    @classmethod
    def from_http(cls, http_status: int, body: str, alert_identifier: Optional[str] = None) -> 'GatewayResponse':
        """Classify a received HTTP response."""
        if 200 <= http_status < 300:
            return cls.success(http_status, body, alert_identifier)
        status = (
            SubmissionStatus.REJECTED if http_status in REJECTED_STATUSES
            else SubmissionStatus.UNEXPECTED_HTTP_STATUS
        )
        return cls.failure(status, http_status, parse_error_body(body, http_status), body, alert_identifier)

    def finished(self, submitted_at: datetime, elapsed: float, attempts: int) -> 'GatewayResponse':
        """Copy stamped with whole-submission timing."""
        return replace(self, submitted_at=submitted_at, elapsed=elapsed, attempts=attempts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.is_success,
            'status': self.status.value,
            'http_status': self.http_status,
            'server_message_id': self.server_message_id,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'alert_identifier': self.alert_identifier,
            'submitted_at': self.submitted_at.isoformat(),
            'elapsed': self.elapsed,
            'attempts': self.attempts,
            'raw_body': self.raw_body
        }


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1].lower()


def _parse(body: Optional[str]) -> Optional[ET.Element]:
    if not body or not body.strip():
        return None
    try:
        return ET.fromstring(body)
    except ET.ParseError:
        return None


def extract_message_id(body: Optional[str]) -> Optional[str]:
    """
    First element named messageId (any case, any namespace), or None.

    IPAWS-OPEN typically answers:
    <response><messageId>...</messageId><status>Success</status></response>
    """
    root = _parse(body)
    if root is None:
        return None
    for elem in root.iter():
        if _local_name(elem.tag) == 'messageid':
            return ''.join(elem.itertext()).strip()
    return None


def _texts(root: ET.Element, names: Tuple[str, ...]) -> List[str]:
    texts = []
    for elem in root.iter():
        if _local_name(elem.tag) in names:
            text = ''.join(elem.itertext()).strip()
            if text:
                texts.append(text)
    return texts


def extract_warnings(body: Optional[str]) -> List[str]:
    root = _parse(body)
    return _texts(root, ('warning',)) if root is not None else []


def parse_error_body(body: Optional[str], http_status: int) -> List[str]:
    """Error strings from error/message/description elements, else a body excerpt."""
    if not body or not body.strip():
        return [f"HTTP {http_status} with empty body"]

    root = _parse(body)
    if root is not None:
        messages = _texts(root, ('error', 'message', 'description'))
        if messages:
            return messages

    return [f"HTTP {http_status}: {body.strip()[:ERROR_BODY_EXCERPT]}"]
