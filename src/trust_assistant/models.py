"""Data models for trust checks, installations and reachability results."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

UNKNOWN = "Unknown"
PARSE_FAILED_SUBJECT = "Certificate parsing failed"


class InstallState(str, Enum):
    """States of a single trust store installation."""

    NOT_STARTED = "not_started"
    TEMP_FILE_WRITTEN = "temp_file_written"
    ELEVATION_REQUESTED = "elevation_requested"
    ALTERNATE_STRATEGY = "alternate_strategy"
    SUCCESS = "success"
    USER_CANCELLED = "user_cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (InstallState.SUCCESS, InstallState.USER_CANCELLED, InstallState.FAILED)


class CheckType(str, Enum):
    """Reachability check strategy."""

    PING = "ping"
    HTTP = "http"


@dataclass(frozen=True)
class CertificateInfo:
    """Display information about a single certificate file."""

    name: str  # File name without extension
    common_name: str
    subject: str  # "CN=..., O=..." in certificate order
    issuer: str
    valid_from: str  # ISO date, day precision
    valid_to: str
    serial_number: str  # Hex
    fingerprint: str  # SHA-1 over DER, "AA:BB:..." uppercase

    @classmethod
    def unknown(cls, name: str) -> "CertificateInfo":
        """Sentinel info for content that could not be parsed."""
        return cls(
            name=name,
            common_name=name,
            subject=PARSE_FAILED_SUBJECT,
            issuer=UNKNOWN,
            valid_from=UNKNOWN,
            valid_to=UNKNOWN,
            serial_number=UNKNOWN,
            fingerprint=UNKNOWN,
        )

    @property
    def is_parsed(self) -> bool:
        return self.fingerprint != UNKNOWN

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "commonName": self.common_name,
            "subject": self.subject,
            "issuer": self.issuer,
            "validFrom": self.valid_from,
            "validTo": self.valid_to,
            "serialNumber": self.serial_number,
            "fingerprint": self.fingerprint,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CertificateInfo":
        name = str(data.get("name", UNKNOWN))
        return cls(
            name=name,
            common_name=str(data.get("commonName", name)),
            subject=str(data.get("subject", UNKNOWN)),
            issuer=str(data.get("issuer", UNKNOWN)),
            valid_from=str(data.get("validFrom", UNKNOWN)),
            valid_to=str(data.get("validTo", UNKNOWN)),
            serial_number=str(data.get("serialNumber", UNKNOWN)),
            fingerprint=str(data.get("fingerprint", UNKNOWN)),
        )


@dataclass
class CertificateEntry:
    """A certificate file together with its current trust status."""

    filename: str
    content: str
    info: CertificateInfo
    is_installed: bool = False
    path: Optional[str] = None
    installing: bool = False

    def with_status(self, is_installed: bool) -> "CertificateEntry":
        return replace(self, is_installed=is_installed, installing=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "filename": self.filename,
            "content": self.content,
            "info": self.info.to_dict(),
            "isInstalled": self.is_installed,
            "installing": self.installing,
        }
        if self.path is not None:
            data["path"] = self.path
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CertificateEntry":
        """
        Build an entry from the camelCase shape printed by ``list --json``.

        Raises:
            KeyError: If ``filename`` or ``content`` is missing
        """
        filename = data["filename"]
        info_data = data.get("info")
        if isinstance(info_data, CertificateInfo):
            info = info_data
        elif isinstance(info_data, Mapping):
            info = CertificateInfo.from_dict(info_data)
        else:
            info = CertificateInfo.unknown(filename)
        return cls(
            filename=filename,
            content=data["content"],
            info=info,
            is_installed=bool(data.get("isInstalled", False)),
            path=data.get("path"),
        )

    @classmethod
    def coerce(cls, value: Any) -> "CertificateEntry":
        if isinstance(value, cls):
            return value
        return cls.from_dict(value)


@dataclass
class InstallResult:
    """Outcome of one installation attempt. Exactly one of message/error is set."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    state: InstallState = InstallState.FAILED
    states: List[InstallState] = field(default_factory=list)  # Visited states, in order

    @classmethod
    def succeeded(cls, message: str, states: Optional[List[InstallState]] = None) -> "InstallResult":
        return cls(success=True, message=message, state=InstallState.SUCCESS, states=list(states or []))

    @classmethod
    def failed(
        cls,
        error: str,
        state: InstallState = InstallState.FAILED,
        states: Optional[List[InstallState]] = None,
    ) -> "InstallResult":
        return cls(success=False, error=error, state=state, states=list(states or []))

    @property
    def cancelled(self) -> bool:
        return self.state == InstallState.USER_CANCELLED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.success:
            data["message"] = self.message
        else:
            data["error"] = self.error
        return data


@dataclass
class BatchInstallResult:
    """Installation result for one file of an install-all run."""

    filename: str
    result: InstallResult

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, **self.result.to_dict()}


@dataclass
class ReachabilityRequest:
    """A parsed reachability target."""

    type: CheckType
    domain: Optional[str] = None
    url: Optional[str] = None

    @property
    def target(self) -> str:
        return (self.url if self.type == CheckType.HTTP else self.domain) or ""


@dataclass
class ReachabilityResult:
    """Result of a ping or HTTP reachability check."""

    accessible: bool
    error_message: Optional[str] = None
    ip: Optional[str] = None
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None  # HTTP strategy only

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "accessible": self.accessible,
            "errorMessage": self.error_message,
            "ip": self.ip,
            "responseTimeMs": self.response_time_ms,
        }
        if self.status_code is not None:
            data["statusCode"] = self.status_code
        return data
